from setuptools import setup, find_packages


with open("README.md", "r") as fh:
    long_description = fh.read()


setup(
    name='PyFITView',
    version='0.1.0',
    url='https://github.com/JoanPuig/PyFIT',
    license='Apache License 2.0',
    author='Joan Puig',
    author_email='joan.puig@gmail.com',
    description='PyFITView decodes .FIT files through a configurable decoding pipeline with progress and error reporting',
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['FITView', 'FITView.*']),
    python_requires='>=3.8',
    install_requires=['numpy', 'garmin-fit-sdk'],
    extras_require={'test': ['pytest>=7']},
)
