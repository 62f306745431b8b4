"""
Ad platform registry

Only Meta is wired to a real API. Google and TikTok are listed so the
dashboard can show them, but always report disconnected.
"""
import enum
from typing import List

from adlens.schemas.meta import PlatformInfo


class Platform(str, enum.Enum):
    """Supported advertising platforms"""
    FACEBOOK = "facebook"
    GOOGLE = "google"
    TIKTOK = "tiktok"


PLATFORM_NAMES = {
    Platform.FACEBOOK: "Meta Ads",
    Platform.GOOGLE: "Google Ads",
    Platform.TIKTOK: "TikTok Ads",
}

SUPPORTED_PLATFORMS = frozenset({Platform.FACEBOOK})


def list_platforms(meta_connected: bool = False) -> List[PlatformInfo]:
    platforms = []
    for platform in Platform:
        connected = platform is Platform.FACEBOOK and meta_connected
        platforms.append(PlatformInfo(
            id=platform.value,
            name=PLATFORM_NAMES[platform],
            status="connected" if connected else "disconnected",
            supported=platform in SUPPORTED_PLATFORMS,
        ))
    return platforms
