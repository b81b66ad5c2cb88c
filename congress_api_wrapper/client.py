"""Client for the Congress LoRa backend REST API"""
import logging
import os
import requests
from congress_api_wrapper.errors import *
from congress_api_wrapper.objects import *
from congress_api_wrapper.stream import DataStream

#Default address of Congress
DEFAULT_ADDR = "https://api.lora.telenor.io"

#Environment variables used when addr/token aren't passed to the client
ADDR_ENV = "CONGRESS_ADDR"
TOKEN_ENV = "CONGRESS_TOKEN"

#Header carrying the API token on every request
TOKEN_HEADER = "X-API-Token"

class CongressClient:
    """
    Congress client to call the REST API.

    Parameters
    ----------
    - token (optional): API token. Read from the CONGRESS_TOKEN environment variable when not set.
    - addr (optional): Congress address. Read from the CONGRESS_ADDR environment variable when not set,
        defaults to https://api.lora.telenor.io.
    - ping_on_init (optional): The instance will ping the server when initialized.
    - timeout (optional): Timeout in seconds for each request, None waits forever.
    """
    def __init__(self, token: str | None = None, addr: str | None = None, ping_on_init: bool = True, timeout: float | None = None):
        """Constructor method to initialize a CongressClient object."""
        if addr is None:
            addr = os.getenv(ADDR_ENV) or DEFAULT_ADDR
        if token is None:
            token = os.getenv(TOKEN_ENV, "")
        self.addr = addr.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        if ping_on_init:
            self.ping()
            logging.info(f"CongressClient(): Connected to {self.addr}")

    def _headers(self) -> dict:
        return {TOKEN_HEADER: self.token, "Content-Type": "application/json"}

    def _request(self, method: str, path: str, body: dict | None = None, params: dict | None = None):
        """
        Generic request used by all convenience wrappers.

        * Attaches the API token header and JSON content type.
        * Encodes body as JSON when set.
        * Raises CongressError on non-2xx responses, CongressConnectionError when no response
          was received and CongressDecodeError when the response isn't valid JSON.

        Parameters
        ----------
        method : str
            HTTP method, e.g. ``"GET"``.
        path : str
            Path relative to the client address, e.g. ``"/applications"``.
        body : dict, optional
            Entity to send in the request body.
        params : dict, optional
            Query parameters.

        Returns
        -------
        - The decoded JSON response, None if the response body is empty.
        """
        url = self.addr + path
        logging.debug(f"CongressClient._request(): {method} {url}")
        try:
            resp = self.session.request(method, url, json=body, params=params,
                                        headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logging.error(f"CongressClient._request(): {method} {path} failed - {e}")
            raise CongressConnectionError(f"{method} {path} failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            err = CongressError.from_response(resp)
            logging.error(f"CongressClient._request(): {method} {path} failed with status code {err.status_code} - {err.message}")
            raise err

        if not resp.content:
            return None
        try:
            return resp.json(**JSON_DECODE_OPTIONS)
        except ValueError as e:
            logging.error(f"CongressClient._request(): Couldn't decode response from {method} {path} - {e}")
            raise CongressDecodeError(f"Couldn't decode response from {method} {path}: {e}") from e

    def _list(self, path: str, field: str, params: dict | None = None) -> list:
        """GET a collection and unwrap the list in `field`."""
        resp = self._request("GET", path, params=params)
        return value_or_default(resp, field, list, [])

    def ping(self) -> None:
        """
        Perform a simple request to the root resource of the Congress server.
        Raises the request's error if the server can't be reached.
        """
        self._request("GET", "/")

    def create_application(self, app: Application | None = None) -> Application:
        """
        Create an Application. The eui is generated by Congress.

        Parameters
        ----------
        - app (optional): The app record to create, used for its tags.

        Returns
        -------
        - The Application object created by Congress.
        """
        if app is None:
            app = Application()
        if not isinstance(app, Application):
            raise TypeError("Expected Application object")
        resp = self._request("POST", "/applications", app.to_dict())
        return Application.from_dict(resp)

    def list_applications(self) -> list[Application]:
        """
        List your applications.

        Returns
        -------
        - List of Application objects.
        """
        return [Application.from_dict(a) for a in self._list("/applications", "applications")]

    def get_application(self, app_eui: Application | str) -> Application:
        """
        Get application.

        Parameters
        ----------
        - app_eui: unique identifier of the app.
            Passing in an Application object will also work.
        """
        resp = self._request("GET", f"/applications/{app_eui}")
        return Application.from_dict(resp)

    def update_application(self, app: Application) -> Application:
        """
        Update an Application.

        Parameters
        ----------
        - app: The app record to update.

        Returns
        -------
        - The updated Application object returned by Congress.
        """
        if not isinstance(app, Application):
            raise TypeError("Expected Application object")
        resp = self._request("PUT", f"/applications/{app}", app.to_dict())
        return Application.from_dict(resp)

    def delete_application(self, app_eui: Application | str) -> None:
        """
        Delete an Application.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.
        """
        self._request("DELETE", f"/applications/{app_eui}")

    def create_device(self, app_eui: Application | str, device_type: DeviceType | str = DeviceType.OTAA) -> Device:
        """
        Create a Device in an application. The EUI and keys are generated by Congress.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.
        - device_type (optional): OTAA (default) or ABP. Can't be changed once the device is created.

        Returns
        -------
        - The Device object created by Congress.
        """
        app_eui = str(app_eui)
        device = Device(app_eui, device_type)
        resp = self._request("POST", f"/applications/{app_eui}/devices", device.to_dict())
        return Device.from_dict(resp, app_eui)

    def list_devices(self, app_eui: Application | str) -> list[Device]:
        """
        List the devices in an application.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.
        """
        app_eui = str(app_eui)
        devices = self._list(f"/applications/{app_eui}/devices", "devices")
        return [Device.from_dict(d, app_eui) for d in devices]

    def update_device(self, device: Device) -> Device:
        """
        Update a Device.

        Parameters
        ----------
        - device: The device record to update.

        Returns
        -------
        - The updated Device object returned by Congress.
        """
        resp = self._request("PUT", self._device_path(device), device.to_dict())
        return Device.from_dict(resp, device.application_eui)

    def delete_device(self, device: Device) -> None:
        """
        Delete a Device.

        Parameters
        ----------
        - device: The device to delete.
        """
        self._request("DELETE", self._device_path(device))

    @staticmethod
    def _device_path(device: Device) -> str:
        if not isinstance(device, Device):
            raise TypeError("Expected Device object")
        return f"/applications/{device.application_eui}/devices/{device}"

    def enqueue_message(self, device: Device, data: bytes, port: int, ack: bool = False) -> DownstreamMessage:
        """
        Enqueue a downstream message for a device. The message is sent the next time
        the device sends a packet upstream.

        Parameters
        ----------
        - device: The device to send the message to.
        - data: The payload.
        - port: Port number, 1-224. Other values raise InvalidPortError without contacting Congress.
        - ack (optional): Require the device to acknowledge the message.

        Returns
        -------
        - The DownstreamMessage object queued by Congress.
        """
        if isinstance(port, bool) or not isinstance(port, int) or not MIN_PORT <= port <= MAX_PORT:
            logging.error(f"CongressClient.enqueue_message(): Port {port} is outside {MIN_PORT}-{MAX_PORT}")
            raise InvalidPortError()
        msg = DownstreamMessage(encode_hex(data), port, ack)
        resp = self._request("POST", self._device_path(device) + "/message", msg.to_dict())
        return DownstreamMessage.from_dict(resp)

    def get_queued_message(self, device: Device) -> DownstreamMessage:
        """
        Get the downstream message currently queued for a device.

        Parameters
        ----------
        - device: The device the message is queued for.
        """
        resp = self._request("GET", self._device_path(device) + "/message")
        return DownstreamMessage.from_dict(resp)

    def clear_queued_message(self, device: Device) -> None:
        """
        Remove the downstream message queued for a device.

        Parameters
        ----------
        - device: The device the message is queued for.
        """
        self._request("DELETE", self._device_path(device) + "/message")

    def list_messages(self, device: Device, limit: int) -> list[UpstreamMessage]:
        """
        List the most recent upstream messages sent by a device.

        Parameters
        ----------
        - device: The device that sent the messages.
        - limit: Max number of messages to return.
        """
        msgs = self._list(self._device_path(device) + "/data", "messages", params={"limit": limit})
        return [UpstreamMessage.from_dict(m) for m in msgs]

    def create_output(self, app_eui: Application | str, config: OutputConfig) -> AppOutput:
        """
        Create an application output.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.
        - config: Output configuration, e.g. MQTTConfig.
        """
        app_eui = str(app_eui)
        output = AppOutput(app_eui, config)
        resp = self._request("POST", f"/applications/{app_eui}/outputs", output.to_dict())
        return AppOutput.from_dict(resp, app_eui)

    def list_outputs(self, app_eui: Application | str) -> list[AppOutput]:
        """
        List the outputs configured for an application.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.
        """
        app_eui = str(app_eui)
        outputs = self._list(f"/applications/{app_eui}/outputs", "outputs")
        return [AppOutput.from_dict(o, app_eui) for o in outputs]

    def update_output(self, output: AppOutput) -> AppOutput:
        """
        Update an application output.

        Parameters
        ----------
        - output: The output record to update.
        """
        resp = self._request("PUT", self._output_path(output), output.to_dict())
        return AppOutput.from_dict(resp, output.application_eui)

    def delete_output(self, output: AppOutput) -> None:
        """
        Delete an application output.

        Parameters
        ----------
        - output: The output to delete.
        """
        self._request("DELETE", self._output_path(output))

    @staticmethod
    def _output_path(output: AppOutput) -> str:
        if not isinstance(output, AppOutput):
            raise TypeError("Expected AppOutput object")
        return f"/applications/{output.application_eui}/outputs/{output}"

    def create_gateway(self, eui: str, ip, strict_ip: bool = False, position: Position | None = None) -> Gateway:
        """
        Create a Gateway.

        Parameters
        ----------
        - eui (EUI64): Unique identifier for the gateway.
        - ip: IP address of the gateway, a string or an `ipaddress` object.
        - strict_ip (optional): Only accept packets from the gateway's IP address.
        - position (optional): Position object with the gateway's location.
        """
        gw = Gateway(eui, str(ip), strict_ip)
        if position is not None:
            gw.position = position
        resp = self._request("POST", "/gateways", gw.to_dict())
        return Gateway.from_dict(resp)

    def list_gateways(self) -> list[Gateway]:
        """
        List your gateways.

        Returns
        -------
        - List of Gateway objects.
        """
        return [Gateway.from_dict(g) for g in self._list("/gateways", "gateways")]

    def update_gateway(self, gateway: Gateway) -> Gateway:
        """
        Update a Gateway.

        Parameters
        ----------
        - gateway: The gateway record to update.
        """
        if not isinstance(gateway, Gateway):
            raise TypeError("Expected Gateway object")
        resp = self._request("PUT", f"/gateways/{gateway}", gateway.to_dict())
        return Gateway.from_dict(resp)

    def delete_gateway(self, gateway_eui: Gateway | str) -> None:
        """
        Delete a Gateway.

        Parameters
        ----------
        - gateway_eui: Unique identifier for the gateway.
            Passing in a Gateway object will also work.
        """
        self._request("DELETE", f"/gateways/{gateway_eui}")

    def data_stream(self, app_eui: Application | str) -> DataStream:
        """
        Open a live data stream for an application.

        Parameters
        ----------
        - app_eui: unique identifier of the application.
            Passing in an Application object will also work.

        Returns
        -------
        - A running DataStream. Read `messages` and `errors`; both are closed when the stream ends.
        """
        return DataStream.open(self.addr, self.token, str(app_eui), TOKEN_HEADER)
