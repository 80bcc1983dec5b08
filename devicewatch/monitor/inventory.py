"""Device inventory loading from the YAML devices file."""

import logging
from collections import Counter
from pathlib import Path
from typing import List, Union

import yaml
from pydantic import ValidationError

from devicewatch.monitor.models import Device

logger = logging.getLogger(__name__)


class DeviceConfigError(Exception):
    """Raised when the devices file cannot be read or is malformed."""


def parse_devices(data: object) -> List[Device]:
    """Build the device list from parsed YAML content.

    Expected shape::

        devices:
          - description: Router
            ip: 192.168.1.1

    Args:
        data: Result of ``yaml.safe_load`` on the devices file.

    Returns:
        Devices in file order. Empty if the file or the list is empty.

    Raises:
        DeviceConfigError: If the content does not have the expected shape.
    """
    if data is None:
        return []
    if not isinstance(data, dict):
        raise DeviceConfigError("devices file must contain a mapping with a 'devices' list")

    entries = data.get("devices") or []
    if not isinstance(entries, list):
        raise DeviceConfigError("'devices' must be a list")

    devices = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DeviceConfigError(f"device #{index + 1} must be a mapping with 'description' and 'ip'")
        try:
            devices.append(Device.model_validate(entry))
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise DeviceConfigError(f"device #{index + 1} is invalid ({fields})") from e

    duplicates = [ip for ip, count in Counter(d.ip for d in devices).items() if count > 1]
    if duplicates:
        # Status is keyed by address, so duplicates share one record
        logger.warning("Duplicate device addresses in inventory: %s", ", ".join(sorted(duplicates)))

    return devices


def load_devices(path: Union[str, Path]) -> List[Device]:
    """Read and parse the devices file.

    Args:
        path: Path to the YAML devices file.

    Returns:
        Devices in file order.

    Raises:
        DeviceConfigError: If the file is unreadable, not valid YAML or malformed.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DeviceConfigError(f"could not read devices file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DeviceConfigError(f"could not parse devices file {path}: {e}") from e

    devices = parse_devices(data)
    logger.info("Loaded %d devices from %s", len(devices), path)
    return devices
