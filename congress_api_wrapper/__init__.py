from congress_api_wrapper.client import *
from congress_api_wrapper.stream import DataStream, Channel, ChannelClosed, STREAM_SEND_TIMEOUT
