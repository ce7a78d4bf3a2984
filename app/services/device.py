import logging
import platform
from pathlib import Path
from typing import Dict

from phone_data_core.models import DeviceInfo

log = logging.getLogger(__name__)

DMI_PRODUCT_NAME = Path("/sys/devices/virtual/dmi/id/product_name")
OS_RELEASE = Path("/etc/os-release")


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return ""


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse KEY=value lines of an os-release file (quotes stripped)."""
    out: Dict[str, str] = {}
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        key, _, value = s.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        out[key.strip()] = value
    return out


def read_device_info(dmi_path: Path = DMI_PRODUCT_NAME, os_release_path: Path = OS_RELEASE) -> DeviceInfo:
    model = _read_text(dmi_path) or platform.machine() or "Unknown"
    release = parse_os_release(_read_text(os_release_path))
    os_version = release.get("PRETTY_NAME") or f"{platform.system()} {platform.release()}".strip() or "Unknown"
    log.debug("Device model=%s os=%s", model, os_version)
    return DeviceInfo(model=model, os_version=os_version)
