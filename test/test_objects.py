import unittest
from congress_api_wrapper.objects import *

class TestTags(unittest.TestCase):
    def test_set_and_get_case_insensitive(self):
        """
        Test that tag names are matched case insensitively
        """
        tags = Tags()
        self.assertTrue(tags.set_tag("name", "Tag test"))
        self.assertEqual(tags.get_tag("name"), "Tag test")
        self.assertEqual(tags.get_tag("nAmE"), "Tag test")
        self.assertIn("NAME", tags)

    def test_illegal_value(self):
        """
        Test that values with illegal characters are rejected and the store is unchanged
        """
        tags = Tags()
        tags.set_tag("name", "Tag test")
        for value in ["alert('Hello world');", "<script>", "a(b", "it's", "value\n", "a\nb"]:
            self.assertFalse(tags.set_tag("name", value))
        self.assertEqual(tags.get_tag("name"), "Tag test")
        self.assertEqual(len(tags), 1)

    def test_illegal_name(self):
        """
        Test that names with illegal characters are rejected
        """
        tags = Tags()
        self.assertFalse(tags.set_tag("alert('Hello');", "test"))
        self.assertFalse(tags.set_tag("name\n", "test"))
        self.assertEqual(len(tags), 0)

    def test_allowed_characters(self):
        """
        Test that letters, digits and -_+@ ,.=: are allowed
        """
        tags = Tags()
        self.assertTrue(tags.set_tag("key_1", "a-b_c+d@e f,g.h=i:j 0123456789"))
        self.assertEqual(tags.get_tag("KEY_1"), "a-b_c+d@e f,g.h=i:j 0123456789")

    def test_missing_tag(self):
        """
        Test that a missing tag reads as an empty string
        """
        self.assertEqual(Tags().get_tag("nope"), "")

    def test_init_drops_invalid_tags(self):
        """
        Test that tags decoded from Congress are validated
        """
        tags = Tags({"Name": "ok", "bad": "<b>", "num": 1})
        self.assertEqual(tags.to_dict(), {"name": "ok"})

    def test_remove_tag(self):
        tags = Tags({"name": "ok"})
        tags.remove_tag("NAME")
        self.assertNotIn("name", tags)

class TestHex(unittest.TestCase):
    def test_decode(self):
        """
        Test hex payload decoding
        """
        self.assertEqual(DataMessage(hex_data="BEEFBABE").data, bytes([0xBE, 0xEF, 0xBA, 0xBE]))
        self.assertEqual(UpstreamMessage(hex_data="beefbabe").data, bytes([0xBE, 0xEF, 0xBA, 0xBE]))
        self.assertEqual(DownstreamMessage("0102", 1).data, b"\x01\x02")

    def test_decode_invalid(self):
        """
        Test that invalid hex decodes to empty bytes instead of raising
        """
        for value in ["invalid hex char", "BE EF", "ABC", "zz"]:
            self.assertEqual(DataMessage(hex_data=value).data, b"")
            self.assertEqual(DownstreamMessage(value, 1).data, b"")

    def test_encode(self):
        self.assertEqual(encode_hex(bytes([1, 2, 3, 0xff])), "010203ff")
        self.assertEqual(encode_hex(b""), "")

class TestValueOrDefault(unittest.TestCase):
    def test_types(self):
        values = {"s": "x", "i": 3, "f": 2.5, "b": True, "n": None}
        self.assertEqual(value_or_default(values, "s", str, ""), "x")
        self.assertEqual(value_or_default(values, "i", int, 0), 3)
        self.assertEqual(value_or_default(values, "f", int, 0), 2)
        self.assertEqual(value_or_default(values, "i", float, 0.0), 3.0)
        self.assertEqual(value_or_default(values, "b", bool, False), True)

    def test_defaults(self):
        values = {"s": 1, "b": "true", "i": True}
        self.assertEqual(value_or_default(values, "s", str, "def"), "def")
        self.assertEqual(value_or_default(values, "b", bool, False), False)
        self.assertEqual(value_or_default(values, "i", int, 7), 7)
        self.assertEqual(value_or_default(values, "missing", int, 7), 7)
        self.assertEqual(value_or_default(None, "s", str, "def"), "def")

    def test_non_finite_numbers(self):
        """
        Test that inf and nan read as the default instead of failing the int conversion
        """
        values = {"inf": float("inf"), "ninf": float("-inf"), "nan": float("nan")}
        for field in values:
            self.assertEqual(value_or_default(values, field, int, 0), 0)
            self.assertEqual(value_or_default(values, field, float, 1.5), 1.5)
        self.assertEqual(value_or_default({"big": 10 ** 400}, "big", float, 1.5), 1.5)

class TestApplication(unittest.TestCase):
    def test_from_dict(self):
        app = Application.from_dict({"applicationEUI": "00-01", "tags": {"name": "test"}})
        self.assertEqual(app.eui, "00-01")
        self.assertEqual(app.get_tag("NAME"), "test")
        self.assertEqual(str(app), "00-01")

    def test_str_method_empty_eui(self):
        """
        Test Application's conversion to string before it is created
        """
        with self.assertRaises(RuntimeError):
            str(Application())

    def test_to_dict(self):
        app = Application()
        app.set_tag("name", "test")
        self.assertEqual(app.to_dict(), {"tags": {"name": "test"}})
        app.eui = "00-01"
        self.assertEqual(app.to_dict(), {"applicationEUI": "00-01", "tags": {"name": "test"}})

class TestDevice(unittest.TestCase):
    def setUp(self):
        self.data = {
            "deviceEUI": "00-09",
            "devAddr": "01020304",
            "appKey": "aa",
            "appSKey": "bb",
            "nwkSKey": "cc",
            "fCntUp": 10,
            "fCntDn": 2,
            "relaxedCounter": True,
            "deviceType": "ABP",
            "keyWarning": False,
            "tags": {"name": "dev"}
        }

    def test_from_dict(self):
        device = Device.from_dict(self.data, "00-01")
        self.assertEqual(device.application_eui, "00-01")
        self.assertEqual(device.eui, "00-09")
        self.assertEqual(device.device_type, DeviceType.ABP)
        self.assertEqual(device.frame_counter_up, 10)
        self.assertEqual(device.frame_counter_down, 2)
        self.assertTrue(device.relaxed_counter)
        self.assertEqual(device.get_tag("name"), "dev")

    def test_to_dict_round_trip(self):
        device = Device.from_dict(self.data, "00-01")
        self.assertEqual(device.to_dict(), self.data)

    def test_device_type_is_read_only(self):
        """
        Test that the device type can't be changed after creation
        """
        device = Device("00-01", DeviceType.OTAA)
        with self.assertRaises(AttributeError):
            device.device_type = DeviceType.ABP
        self.assertEqual(device.device_type, DeviceType.OTAA)

    def test_invalid_device_type(self):
        with self.assertRaises(ValueError):
            Device("00-01", "FOO")

    def test_str_method_empty_eui(self):
        with self.assertRaises(RuntimeError):
            str(Device("00-01", "OTAA"))

class TestGateway(unittest.TestCase):
    def test_to_dict_without_position(self):
        gw = Gateway("00-02", "127.0.0.1")
        self.assertEqual(gw.to_dict(), {
            "gatewayEUI": "00-02",
            "ip": "127.0.0.1",
            "strictIP": False,
            "tags": {}
        })

    def test_position(self):
        gw = Gateway("00-02", "127.0.0.1", strict_ip=True)
        gw.position = Position(63.4, 10.4, 20.0)
        data = gw.to_dict()
        self.assertEqual(data["latitude"], 63.4)
        self.assertEqual(data["longitude"], 10.4)
        self.assertEqual(data["altitude"], 20.0)
        self.assertTrue(data["strictIP"])
        self.assertEqual(str(gw.position), "(63.4, 10.4, 20.0m)")

    def test_from_dict(self):
        gw = Gateway.from_dict({"gatewayEUI": "00-02", "ip": "10.0.0.1", "strictIP": True,
                                "latitude": 1, "longitude": 2.5, "tags": {"name": "gw"}})
        self.assertEqual(str(gw), "00-02")
        self.assertEqual(gw.ip, "10.0.0.1")
        self.assertEqual(gw.latitude, 1.0)
        self.assertEqual(gw.longitude, 2.5)
        self.assertEqual(gw.altitude, 0.0)
        self.assertEqual(gw.get_tag("Name"), "gw")

    def test_str_method_empty_eui(self):
        gw = Gateway("", "127.0.0.1")
        with self.assertRaises(RuntimeError):
            str(gw)

class TestMQTTConfig(unittest.TestCase):
    def test_config(self):
        """
        Test that MQTTConfig materializes as a mapping tagged with its type
        """
        cfg = MQTTConfig(endpoint="mqtt.example.com", username="user", client_id="c1", topic_name="t")
        self.assertEqual(cfg.config(), {
            "type": "mqtt",
            "endpoint": "mqtt.example.com",
            "port": 1883,
            "tls": False,
            "certCheck": True,
            "username": "user",
            "password": "",
            "clientid": "c1",
            "topicName": "t"
        })

    def test_from_config_defaults(self):
        cfg = MQTTConfig.from_config({"type": "mqtt", "endpoint": "broker", "port": "bad"})
        self.assertEqual(cfg.endpoint, "broker")
        self.assertEqual(cfg.port, 1883)
        self.assertFalse(cfg.tls)
        self.assertTrue(cfg.certificate_check)

    def test_from_config_values(self):
        cfg = MQTTConfig.from_config({"port": 8883.0, "tls": True, "certCheck": False, "clientid": "c1"})
        self.assertEqual(cfg.port, 8883)
        self.assertTrue(cfg.tls)
        self.assertFalse(cfg.certificate_check)
        self.assertEqual(cfg.client_id, "c1")

    def test_base_config_not_implemented(self):
        with self.assertRaises(NotImplementedError):
            OutputConfig().config()

class TestAppOutput(unittest.TestCase):
    def test_init_with_config_object(self):
        output = AppOutput("00-01", MQTTConfig(endpoint="broker"))
        self.assertEqual(output.output_type, "mqtt")
        self.assertEqual(output.to_dict(), {"appEUI": "00-01", "config": MQTTConfig(endpoint="broker").config()})

    def test_from_dict(self):
        output = AppOutput.from_dict({
            "eui": "00-05",
            "config": {"type": "mqtt", "endpoint": "broker"},
            "logs": [{"timestamp": "2017-01-01T00:00:00Z", "message": "connected"}],
            "status": "running"
        }, "00-01")
        self.assertEqual(output.application_eui, "00-01")
        self.assertEqual(str(output), "00-05")
        self.assertEqual(output.status, "running")
        self.assertEqual(output.logs[0].message, "connected")
        self.assertEqual(MQTTConfig.from_config(output.config).endpoint, "broker")

class TestMessages(unittest.TestCase):
    def test_upstream_from_dict(self):
        msg = UpstreamMessage.from_dict({
            "devAddr": "01020304", "timestamp": 1500000000000, "data": "BEEF",
            "appEUI": "00-01", "deviceEUI": "00-09", "rssi": -80, "snr": 7.5,
            "frequency": 868.1, "gatewayEUI": "00-02", "dataRate": "SF7BW125"
        })
        self.assertEqual(msg.data, b"\xbe\xef")
        self.assertEqual(msg.rssi, -80)
        self.assertEqual(msg.snr, 7.5)
        self.assertEqual(msg.data_rate, "SF7BW125")
        self.assertEqual(msg.to_dict()["gatewayEUI"], "00-02")

    def test_downstream_from_dict(self):
        msg = DownstreamMessage.from_dict({"data": "0102", "port": 12, "ack": True, "state": "pending"})
        self.assertEqual(msg.port, 12)
        self.assertTrue(msg.ack)
        self.assertEqual(msg.state, "pending")
        self.assertEqual(msg.sent_time, 0)

if __name__ == "__main__":
    unittest.main()
