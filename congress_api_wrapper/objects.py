"""
Definitions of Objects that are used in Congress.

Field names in `to_dict()`/`from_dict()` follow the JSON documents exchanged with
the Congress REST API.
"""
import binascii
import math
import re
from enum import Enum

#Tag names and values may only contain letters, digits and "-_+@ ,.=:"
TAG_PATTERN = re.compile(r"[A-Za-z0-9:_\-+@ ,.=]*")

#Valid range for downstream message ports
MIN_PORT = 1
MAX_PORT = 224

def value_or_default(values: dict, key: str, expected_type: type, default):
    """
    Read `key` from a decoded JSON mapping, falling back to `default` when the key is
    missing or holds a value of the wrong type.

    JSON numbers are accepted for both int and float fields. Booleans are never
    accepted as numbers. Non-finite numbers (inf, nan) read as the default.
    """
    if not isinstance(values, dict):
        return default
    val = values.get(key)
    if expected_type in (int, float):
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            return default
        if isinstance(val, float) and not math.isfinite(val):
            return default
        try:
            return expected_type(val)
        except OverflowError:
            return default
    if not isinstance(val, expected_type):
        return default
    return val

def decode_hex(hex_string: str) -> bytes:
    """Decode a hex string. Returns empty bytes if the string isn't valid hex."""
    try:
        return binascii.unhexlify(hex_string)
    except (binascii.Error, TypeError, ValueError):
        return b""

def encode_hex(data: bytes) -> str:
    """Encode bytes as a lower case hex string."""
    return binascii.hexlify(bytes(data)).decode("ascii")

def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON number {name}")

def _finite_float(text: str) -> float:
    val = float(text)
    if not math.isfinite(val):
        raise ValueError(f"JSON number {text} is out of range")
    return val

#Keyword arguments for json.loads/Response.json() that reject NaN, Infinity and out of range numbers
JSON_DECODE_OPTIONS = {'parse_constant': _reject_constant, 'parse_float': _finite_float}

class DeviceType(Enum):
    """
    Definition of DeviceType Object for Congress.

    - OTAA (Over-The-Air-Activation) devices use a join procedure to negotiate
      session keys and require just one application key.
    - ABP (Activation By Personalization) devices have pre-provisioned session
      keys and device addresses.
    """
    OTAA = "OTAA"
    ABP = "ABP"

class Tags:
    """
    Tag store attached to applications, devices and gateways.

    Tag names are case insensitive. Names and values are restricted to letters,
    digits and the characters "-_+@ ,.=:". `set_tag()` returns False instead of
    raising when a name or value is rejected.
    """
    def __init__(self, tags: dict = None):
        self._tags = {}
        for name, value in (tags or {}).items():
            if isinstance(name, str) and isinstance(value, str):
                self.set_tag(name, value)

    @staticmethod
    def is_valid(text: str) -> bool:
        """Check that text only contains characters allowed in tags."""
        return isinstance(text, str) and TAG_PATTERN.fullmatch(text) is not None

    def set_tag(self, name: str, value: str) -> bool:
        """Set a tag. Returns False and leaves the store unchanged if name or value is invalid."""
        if not self.is_valid(name) or not self.is_valid(value):
            return False
        self._tags[name.lower()] = value
        return True

    def get_tag(self, name: str) -> str:
        """Get a tag value, "" if the tag isn't set."""
        return self._tags.get(name.lower(), "")

    def remove_tag(self, name: str) -> None:
        self._tags.pop(name.lower(), None)

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name.lower() in self._tags

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other) -> bool:
        if isinstance(other, Tags):
            return self._tags == other._tags
        return NotImplemented

    def __repr__(self):
        return f"Tags({self._tags!r})"

    def to_dict(self) -> dict:
        """Convert Tags object to dictionary."""
        return dict(self._tags)

class Application:
    """
    Definition of Application Object for Congress.

    LoRa applications group related devices together.

    Params:
    - eui (optional): Unique identifier of the application.
        The eui gets generated by Congress when it is created, use `CongressClient.create_application()`.
    - tags (dict<string,string>, optional): Tags associated with the application.
    """
    def __init__(self, eui: str = '', tags: dict = None):
        """Constructor method to initialize an Application object."""
        self.eui = eui
        self.tags = Tags(tags)

    @classmethod
    def from_dict(cls, data: dict):
        """Convert a decoded JSON document to an Application object."""
        return cls(
            eui=value_or_default(data, 'applicationEUI', str, ''),
            tags=value_or_default(data, 'tags', dict, {})
        )

    def set_tag(self, name: str, value: str) -> bool:
        return self.tags.set_tag(name, value)

    def get_tag(self, name: str) -> str:
        return self.tags.get_tag(name)

    def __str__(self):
        """String representation of the application object"""
        if self.eui == "":
            raise RuntimeError("Application: The eui is empty, try creating the app first in Congress using CongressClient.create_application()")
        return self.eui

    def to_dict(self) -> dict:
        """Convert Application object to dictionary."""
        data = {'tags': self.tags.to_dict()}
        if self.eui:
            data['applicationEUI'] = self.eui
        return data

class Device:
    """
    Definition of Device Object for Congress.

    A device belongs to exactly one application at a time. The device type is
    decided when the device is created and can't be changed afterwards.

    Params:
    - application_eui: Unique identifier of the application the device belongs to.
    - device_type: OTAA or ABP.
    - eui (optional): Unique identifier of the device, generated by Congress.
    - device_address (optional): Device address.
    - application_key (optional): Application key (OTAA).
    - application_session_key (optional): Application session key.
    - network_session_key (optional): Network session key.
    - frame_counter_up (optional): Upstream frame counter.
    - frame_counter_down (optional): Downstream frame counter.
    - relaxed_counter (optional): Accept frame counters that restart at 0.
        Note, relaxing the counter compromises security as it allows replay-attacks.
    - key_warning (optional): Set by Congress when the keys are considered weak.
    - tags (dict<string,string>, optional): Tags associated with the device.
    """
    def __init__(self, application_eui: str, device_type: DeviceType | str, eui: str = '',
        device_address: str = '', application_key: str = '', application_session_key: str = '',
        network_session_key: str = '', frame_counter_up: int = 0, frame_counter_down: int = 0,
        relaxed_counter: bool = False, key_warning: bool = False, tags: dict = None):
        """Constructor method to initialize a Device object."""
        self.application_eui = str(application_eui)
        self._device_type = DeviceType(device_type)
        self.eui = eui
        self.device_address = device_address
        self.application_key = application_key
        self.application_session_key = application_session_key
        self.network_session_key = network_session_key
        self.frame_counter_up = frame_counter_up
        self.frame_counter_down = frame_counter_down
        self.relaxed_counter = relaxed_counter
        self.key_warning = key_warning
        self.tags = Tags(tags)

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    @classmethod
    def from_dict(cls, data: dict, application_eui: str):
        """Convert a decoded JSON document to a Device object."""
        return cls(
            application_eui=application_eui,
            device_type=value_or_default(data, 'deviceType', str, DeviceType.OTAA.value),
            eui=value_or_default(data, 'deviceEUI', str, ''),
            device_address=value_or_default(data, 'devAddr', str, ''),
            application_key=value_or_default(data, 'appKey', str, ''),
            application_session_key=value_or_default(data, 'appSKey', str, ''),
            network_session_key=value_or_default(data, 'nwkSKey', str, ''),
            frame_counter_up=value_or_default(data, 'fCntUp', int, 0),
            frame_counter_down=value_or_default(data, 'fCntDn', int, 0),
            relaxed_counter=value_or_default(data, 'relaxedCounter', bool, False),
            key_warning=value_or_default(data, 'keyWarning', bool, False),
            tags=value_or_default(data, 'tags', dict, {})
        )

    def set_tag(self, name: str, value: str) -> bool:
        return self.tags.set_tag(name, value)

    def get_tag(self, name: str) -> str:
        return self.tags.get_tag(name)

    def __str__(self):
        if self.eui == "":
            raise RuntimeError("Device: The eui is empty, try creating the device first in Congress using CongressClient.create_device()")
        return self.eui

    def to_dict(self) -> dict:
        """Convert Device object to dictionary."""
        return {
            'deviceEUI': self.eui,
            'devAddr': self.device_address,
            'appKey': self.application_key,
            'appSKey': self.application_session_key,
            'nwkSKey': self.network_session_key,
            'fCntUp': self.frame_counter_up,
            'fCntDn': self.frame_counter_down,
            'relaxedCounter': self.relaxed_counter,
            'deviceType': self.device_type.value,
            'keyWarning': self.key_warning,
            'tags': self.tags.to_dict()
        }

class Position:
    """
    Definition of Position Object for Congress.

    Params:
    - latitude: Latitude coordinate.
    - longitude: Longitude coordinate.
    - altitude: Altitude in meters.
    """
    def __init__(self, latitude: float, longitude: float, altitude: float = 0.0):
        self.latitude = latitude
        self.longitude = longitude
        self.altitude = altitude

    def __str__(self):
        return f"({self.latitude}, {self.longitude}, {self.altitude}m)"

class Gateway:
    """
    Definition of Gateway Object for Congress.

    Gateways forward radio packets from devices to any and all applications in the
    backend. Unlike applications and devices the EUI is chosen by the caller.

    Params:
    - eui (EUI64): Unique identifier for the gateway.
    - ip: IP address of the gateway.
    - strict_ip (optional): Only accept packets from the gateway's IP address.
    - latitude, longitude, altitude (optional): Gateway position.
    - tags (dict<string,string>, optional): Tags associated with the gateway.
    """
    def __init__(self, eui: str, ip: str = '', strict_ip: bool = False, latitude: float = 0.0,
        longitude: float = 0.0, altitude: float = 0.0, tags: dict = None):
        """Constructor method to initialize a Gateway object."""
        self.eui = eui
        self.ip = str(ip)
        self.strict_ip = strict_ip
        self.latitude = latitude
        self.longitude = longitude
        self.altitude = altitude
        self.tags = Tags(tags)

    @property
    def position(self) -> Position:
        return Position(self.latitude, self.longitude, self.altitude)

    @position.setter
    def position(self, position: Position):
        self.latitude = position.latitude
        self.longitude = position.longitude
        self.altitude = position.altitude

    @classmethod
    def from_dict(cls, data: dict):
        """Convert a decoded JSON document to a Gateway object."""
        return cls(
            eui=value_or_default(data, 'gatewayEUI', str, ''),
            ip=value_or_default(data, 'ip', str, ''),
            strict_ip=value_or_default(data, 'strictIP', bool, False),
            latitude=value_or_default(data, 'latitude', float, 0.0),
            longitude=value_or_default(data, 'longitude', float, 0.0),
            altitude=value_or_default(data, 'altitude', float, 0.0),
            tags=value_or_default(data, 'tags', dict, {})
        )

    def set_tag(self, name: str, value: str) -> bool:
        return self.tags.set_tag(name, value)

    def get_tag(self, name: str) -> str:
        return self.tags.get_tag(name)

    def __str__(self):
        if self.eui == "":
            raise RuntimeError("Gateway: The eui is empty, set the gateway's EUI before calling Congress")
        return self.eui

    def to_dict(self) -> dict:
        """Convert Gateway object to dictionary."""
        data = {
            'gatewayEUI': self.eui,
            'ip': self.ip,
            'strictIP': self.strict_ip,
            'tags': self.tags.to_dict()
        }
        #position is left out when it isn't set
        for key in ('latitude', 'longitude', 'altitude'):
            if getattr(self, key):
                data[key] = getattr(self, key)
        return data

class OutputConfig:
    """
    Base class for application output configurations.

    Subclasses materialize themselves as a generic mapping tagged with a "type" key.
    """
    output_type = ''

    def config(self) -> dict:
        raise NotImplementedError

class MQTTConfig(OutputConfig):
    """
    Definition of MQTT output configuration.

    Params:
    - endpoint: Host name of the MQTT broker.
    - port (optional): Broker port, default 1883.
    - tls (optional): Use TLS when connecting.
    - certificate_check (optional): Verify the broker's certificate when using TLS.
    - username (optional): Username for the broker.
    - password (optional): Password for the broker.
    - client_id (optional): MQTT client id.
    - topic_name (optional): Topic that device data is published to.
    """
    output_type = 'mqtt'

    def __init__(self, endpoint: str = '', port: int = 1883, tls: bool = False, certificate_check: bool = True,
        username: str = '', password: str = '', client_id: str = '', topic_name: str = ''):
        self.endpoint = endpoint
        self.port = port
        self.tls = tls
        self.certificate_check = certificate_check
        self.username = username
        self.password = password
        self.client_id = client_id
        self.topic_name = topic_name

    @classmethod
    def from_config(cls, values: dict):
        """Read an output's config mapping into an MQTTConfig object."""
        return cls(
            endpoint=value_or_default(values, 'endpoint', str, ''),
            port=value_or_default(values, 'port', int, 1883),
            tls=value_or_default(values, 'tls', bool, False),
            certificate_check=value_or_default(values, 'certCheck', bool, True),
            username=value_or_default(values, 'username', str, ''),
            password=value_or_default(values, 'password', str, ''),
            client_id=value_or_default(values, 'clientid', str, ''),
            topic_name=value_or_default(values, 'topicName', str, '')
        )

    def config(self) -> dict:
        return {
            'type': self.output_type,
            'endpoint': self.endpoint,
            'port': self.port,
            'tls': self.tls,
            'certCheck': self.certificate_check,
            'username': self.username,
            'password': self.password,
            'clientid': self.client_id,
            'topicName': self.topic_name
        }

class OutputLog:
    """Log entry from an application output."""
    def __init__(self, timestamp: str = '', message: str = ''):
        self.timestamp = timestamp
        self.message = message

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            timestamp=value_or_default(data, 'timestamp', str, ''),
            message=value_or_default(data, 'message', str, '')
        )

    def __str__(self):
        return f"{self.timestamp} {self.message}"

class AppOutput:
    """
    Definition of Application Output Object for Congress.

    Params:
    - application_eui: Unique identifier of the application the output belongs to.
    - config (dict): Output configuration, see `OutputConfig.config()`.
    - eui (optional): Unique identifier of the output, generated by Congress.
    - logs (optional): Log entries reported by Congress.
    - status (optional): Output status reported by Congress.
    """
    def __init__(self, application_eui: str, config: OutputConfig | dict, eui: str = '',
        logs: list = None, status: str = ''):
        self.application_eui = str(application_eui)
        self.config = config.config() if isinstance(config, OutputConfig) else dict(config)
        self.eui = eui
        self.logs = logs or []
        self.status = status

    @property
    def output_type(self) -> str:
        return value_or_default(self.config, 'type', str, '')

    @classmethod
    def from_dict(cls, data: dict, application_eui: str = ''):
        """Convert a decoded JSON document to an AppOutput object."""
        return cls(
            application_eui=value_or_default(data, 'appEUI', str, application_eui) or application_eui,
            config=value_or_default(data, 'config', dict, {}),
            eui=value_or_default(data, 'eui', str, ''),
            logs=[OutputLog.from_dict(log) for log in value_or_default(data, 'logs', list, [])],
            status=value_or_default(data, 'status', str, '')
        )

    def __str__(self):
        if self.eui == "":
            raise RuntimeError("AppOutput: The eui is empty, try creating the output first in Congress using CongressClient.create_output()")
        return self.eui

    def to_dict(self) -> dict:
        """Convert AppOutput object to dictionary."""
        data = {'appEUI': self.application_eui, 'config': self.config}
        if self.eui:
            data['eui'] = self.eui
        return data

class DownstreamMessage:
    """
    Definition of a downstream message queued for a device.

    The message is sent the next time the device sends a packet upstream.

    Params:
    - hex_data: The payload as a hex string.
    - port: Port number (1-224).
    - ack (optional): Require the device to acknowledge the message.
    - sent_time, created_time, ack_time (optional): Timestamps set by Congress.
    - state (optional): Message state set by Congress.
    """
    def __init__(self, hex_data: str, port: int, ack: bool = False, sent_time: int = 0,
        created_time: int = 0, ack_time: int = 0, state: str = ''):
        self.hex_data = hex_data
        self.port = port
        self.ack = ack
        self.sent_time = sent_time
        self.created_time = created_time
        self.ack_time = ack_time
        self.state = state

    @property
    def data(self) -> bytes:
        """The payload bytes, empty if the hex data can't be decoded."""
        return decode_hex(self.hex_data)

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            hex_data=value_or_default(data, 'data', str, ''),
            port=value_or_default(data, 'port', int, 0),
            ack=value_or_default(data, 'ack', bool, False),
            sent_time=value_or_default(data, 'sentTime', int, 0),
            created_time=value_or_default(data, 'createdTime', int, 0),
            ack_time=value_or_default(data, 'ackTime', int, 0),
            state=value_or_default(data, 'state', str, '')
        )

    def to_dict(self) -> dict:
        return {
            'data': self.hex_data,
            'port': self.port,
            'ack': self.ack,
            'sentTime': self.sent_time,
            'createdTime': self.created_time,
            'ackTime': self.ack_time,
            'state': self.state
        }

class UpstreamMessage:
    """
    Definition of a message sent from a device to Congress.

    Params:
    - hex_data: The payload as a hex string.
    - device_address, device_eui, application_eui, gateway_eui: Identifiers.
    - timestamp: Reception time.
    - rssi, snr, frequency: Radio metrics.
    - data_rate: Data rate label, e.g. "SF7BW125".
    """
    def __init__(self, hex_data: str = '', device_address: str = '', timestamp: int = 0,
        application_eui: str = '', device_eui: str = '', rssi: int = 0, snr: float = 0.0,
        frequency: float = 0.0, gateway_eui: str = '', data_rate: str = ''):
        self.hex_data = hex_data
        self.device_address = device_address
        self.timestamp = timestamp
        self.application_eui = application_eui
        self.device_eui = device_eui
        self.rssi = rssi
        self.snr = snr
        self.frequency = frequency
        self.gateway_eui = gateway_eui
        self.data_rate = data_rate

    @property
    def data(self) -> bytes:
        """The payload bytes, empty if the hex data can't be decoded."""
        return decode_hex(self.hex_data)

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            hex_data=value_or_default(data, 'data', str, ''),
            device_address=value_or_default(data, 'devAddr', str, ''),
            timestamp=value_or_default(data, 'timestamp', int, 0),
            application_eui=value_or_default(data, 'appEUI', str, ''),
            device_eui=value_or_default(data, 'deviceEUI', str, ''),
            rssi=value_or_default(data, 'rssi', int, 0),
            snr=value_or_default(data, 'snr', float, 0.0),
            frequency=value_or_default(data, 'frequency', float, 0.0),
            gateway_eui=value_or_default(data, 'gatewayEUI', str, ''),
            data_rate=value_or_default(data, 'dataRate', str, '')
        )

    def to_dict(self) -> dict:
        return {
            'data': self.hex_data,
            'devAddr': self.device_address,
            'timestamp': self.timestamp,
            'appEUI': self.application_eui,
            'deviceEUI': self.device_eui,
            'rssi': self.rssi,
            'snr': self.snr,
            'frequency': self.frequency,
            'gatewayEUI': self.gateway_eui,
            'dataRate': self.data_rate
        }

class DataMessage(UpstreamMessage):
    """Device data pushed to the consumer of an application data stream."""
