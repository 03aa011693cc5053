"""Command line entry point: run the server or companion, provision wearables."""
import argparse
import asyncio
import logging
import sys

from .config import settings
from .exceptions import ProvisioningError


def _require_token(args) -> str:
    token = args.token or settings.session_token
    if not token:
        raise ProvisioningError("A session token is required (--token or SESSION_TOKEN)")
    return token


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("epsilon.main:app", host=args.host, port=args.port or settings.web_port)
    return 0


async def _run_companion():
    from .services.companion import companion_service

    try:
        await companion_service.run()
    finally:
        companion_service.stop()


def cmd_companion(args) -> int:
    try:
        asyncio.run(_run_companion())
    except KeyboardInterrupt:
        pass
    return 0


async def _wifi_scan(args) -> int:
    from .services.wifi_provisioner import WiFiProvisioner

    provisioner = WiFiProvisioner(scan_wait=args.scan_wait)
    devices = await provisioner.scan_for_esp32_devices()
    if not devices:
        print("No ESP32 devices found")
        return 1
    for device in devices:
        print(f"{device.ssid}\t{device.signal_strength}\t{device.bssid}")
    return 0


async def _wifi_provision(args) -> int:
    from .services.esp32_client import ESP32Client
    from .services.wifi_provisioner import ESP32Device, WiFiProvisioner

    token = _require_token(args)
    provisioner = WiFiProvisioner(
        esp32_client=ESP32Client(device_ip=args.device_ip),
        scan_wait=args.scan_wait,
        join_wait=args.join_wait,
    )

    if args.device_ssid:
        device = ESP32Device(name=args.device_ssid.replace("_", " "), ssid=args.device_ssid, signal_strength=0)
    else:
        devices = await provisioner.scan_for_esp32_devices()
        if not devices:
            print("No ESP32 devices found")
            return 1
        device = max(devices, key=lambda d: d.signal_strength)
        print(f"Using {device.ssid}")

    result = await provisioner.provision(device, token, args.wifi_ssid, args.wifi_password)
    print(result.message)
    if result.device_id:
        print(f"Device ID: {result.device_id}")
    return 0 if result.success else 1


async def _ble_scan(args) -> int:
    from .services.ble_provisioner import BleProvisioner

    candidates = await BleProvisioner(scan_seconds=args.scan_seconds).scan()
    if not candidates:
        print("No ESP32 devices found")
        return 1
    for candidate in candidates:
        print(f"{candidate.address}\t{candidate.name}")
    return 0


async def _ble_provision(args) -> int:
    from .services.ble_provisioner import BleProvisioner

    token = _require_token(args)
    await BleProvisioner().send_credentials(args.address, token, args.wifi_ssid, args.wifi_password)
    print("Credentials sent")
    return 0


async def _device_info(args) -> int:
    from .services.esp32_client import ESP32Client

    client = ESP32Client(device_ip=args.device_ip)
    info = await client.get_device_info()
    if info is None:
        print(f"No device answering at {client.device_ip}")
        return 1

    print(f"Device ID: {info.device_id}")
    print(f"Name: {info.device_name}")
    print(f"Firmware: {info.version}")
    print(f"Status: {info.status}")
    print(f"Reachable: {'yes' if await client.check_status() else 'no'}")
    return 0


async def _set_contact(args) -> int:
    from .services.emergency_contact import EmergencyContactStore

    store = EmergencyContactStore()
    if args.clear:
        store.clear()
        print("Emergency contact cleared")
        return 0

    if not args.phone or not args.phone.strip():
        raise ProvisioningError("A phone number is required (or pass --clear)")

    synced = await store.save(args.phone.strip(), args.name)
    print("Emergency contact saved" + ("" if synced else " locally only"))
    return 0 if synced else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="epsilon", description="Epsilon fall detection companion")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the web application")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    companion = sub.add_parser("companion", help="run the companion runtime without the web app")
    companion.set_defaults(func=cmd_companion)

    wifi_scan = sub.add_parser("wifi-scan", help="list ESP32 access points in range")
    wifi_scan.add_argument("--scan-wait", type=float, default=3)
    wifi_scan.set_defaults(coro=_wifi_scan)

    wifi_provision = sub.add_parser("wifi-provision", help="configure a wearable over its access point")
    wifi_provision.add_argument("--device-ssid", help="device access point; scans when omitted")
    wifi_provision.add_argument("--device-ip", default=None)
    wifi_provision.add_argument("--wifi-ssid", required=True, help="home network for the device")
    wifi_provision.add_argument("--wifi-password", required=True)
    wifi_provision.add_argument("--token", help="session token; defaults to SESSION_TOKEN")
    wifi_provision.add_argument("--scan-wait", type=float, default=3)
    wifi_provision.add_argument("--join-wait", type=float, default=5)
    wifi_provision.set_defaults(coro=_wifi_provision)

    ble_scan = sub.add_parser("ble-scan", help="list wearables advertising over BLE")
    ble_scan.add_argument("--scan-seconds", type=float, default=10)
    ble_scan.set_defaults(coro=_ble_scan)

    ble_provision = sub.add_parser("ble-provision", help="write credentials to a wearable over BLE")
    ble_provision.add_argument("address")
    ble_provision.add_argument("--wifi-ssid", required=True)
    ble_provision.add_argument("--wifi-password", required=True)
    ble_provision.add_argument("--token")
    ble_provision.set_defaults(coro=_ble_provision)

    device_info = sub.add_parser("device-info", help="show a wearable's identity while joined to its access point")
    device_info.add_argument("--device-ip", default=None)
    device_info.set_defaults(coro=_device_info)

    set_contact = sub.add_parser("set-contact", help="set the emergency contact called after a fall")
    set_contact.add_argument("phone", nargs="?")
    set_contact.add_argument("--name", default="")
    set_contact.add_argument("--clear", action="store_true", help="forget the locally cached contact")
    set_contact.set_defaults(coro=_set_contact)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if hasattr(args, "func"):
        return args.func(args)

    try:
        return asyncio.run(args.coro(args))
    except ProvisioningError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
