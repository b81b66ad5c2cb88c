import argparse
import logging
import os
from congress_api_wrapper import *

def main(): # pragma: no cover
    parser = argparse.ArgumentParser()
    parser.add_argument("--debug", action="store_true", help="enable debug logs")
    parser.add_argument(
        "--congress-addr",
        default=os.getenv("CONGRESS_ADDR", DEFAULT_ADDR),
        help="Congress's server address",
    )
    parser.add_argument(
        "--congress-token",
        default=os.getenv("CONGRESS_TOKEN"),
        help="The Congress API token to use to access APIs",
    )
    parser.add_argument(
        "--stream",
        metavar="APP_EUI",
        help="Print live device data for the application",
    )
    args = parser.parse_args()
    #configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
    )
    congress_client = CongressClient(args.congress_token, args.congress_addr)

    if args.stream is None:
        for app in congress_client.list_applications():
            print(app.eui, app.tags.to_dict())
        return

    stream = congress_client.data_stream(args.stream)
    for msg in stream.messages:
        print(msg.device_eui, msg.hex_data, msg.rssi, msg.snr)
    for err in stream.errors:
        print("stream ended:", err)

if __name__ == "__main__":
    main() # pragma: no cover
