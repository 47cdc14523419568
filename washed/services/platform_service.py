import re
import logging

from ..models.platform_capabilities import PlatformCapabilities

logger = logging.getLogger(__name__)

_MOBILE_UA = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini|Mobile",
    re.IGNORECASE,
)


class PlatformService:
    """
    Capability query for the requesting client.

    Mobile browsers get the native share sheet with the PNG attached;
    desktop browsers fall back to a download. Any browser can take an
    image/png clipboard write; clients that send no User-Agent (scripts)
    get a view link instead.
    """

    @staticmethod
    def is_mobile(user_agent: str | None) -> bool:
        return bool(user_agent) and bool(_MOBILE_UA.search(user_agent))

    def detect(self, user_agent: str | None) -> PlatformCapabilities:
        mobile = self.is_mobile(user_agent)
        capabilities = PlatformCapabilities(
            is_mobile=mobile,
            can_share_files=mobile,
            can_copy_image=bool(user_agent),
        )
        logger.debug(f"Capabilities for UA {user_agent!r}: {capabilities}")
        return capabilities
