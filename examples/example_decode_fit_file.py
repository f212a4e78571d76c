# Copyright 2019 Joan Puig
# See LICENSE for details


import asyncio
import logging
import os

from FITView.decoder import DecodeFailure, FitParser
from FITView.monitor import TimerPerformanceMonitor


def main(file_name: str = './data/FIT/MY_ACTIVITY_FILE.fit'):
    # This sample code shows how to decode a FIT file into a dict of message type to messages

    logging.basicConfig(level=logging.INFO)

    # Modify to fit your directory setup
    if not os.path.exists(file_name):
        print('{} not found, nothing to decode'.format(file_name))
        return None

    # Reads the binary data of the .FIT file
    with open(file_name, 'rb') as file:
        file_bytes = file.read()

    # Constructs a FitParser that times every decode
    monitor = TimerPerformanceMonitor()
    parser = FitParser()
    parser.initialize_state_management(performance_monitor=monitor)

    # Decodes the file
    result = asyncio.run(parser.decode_fit_file(file_bytes, source='example'))

    if isinstance(result, DecodeFailure):
        print('Unable to decode {}: {}'.format(file_name, result.error))
    else:
        for message_type, messages in result.items():
            print('{}: {}'.format(message_type, len(messages)))

    return result


if __name__ == "__main__":
    main()
