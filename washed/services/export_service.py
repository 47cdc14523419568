from typing import Any, Dict

from ..models.output_image import OutputImage
from ..models.platform_capabilities import PlatformCapabilities

SHARE_TITLE = "I'M WASHED"
SHARE_TEXT = "I'm washed. Made with the I'M WASHED meme generator."


class ExportService:
    """
    Builds the payloads the three export consumers need.

    • download:  attachment headers for `im-washed.png`
    • clipboard: base64 image/png, or a view link when unsupported
    • share:     title/text/file for native share, or a download link

    Fallbacks only change *how* the result is handed over; the OutputImage
    itself is never touched.
    """

    @staticmethod
    def download_headers(output: OutputImage) -> Dict[str, str]:
        return {
            "Content-Type": output.mime_type,
            "Content-Disposition": f'attachment; filename="{output.filename}"',
            "Content-Length": str(len(output.data)),
        }

    @staticmethod
    def clipboard_payload(
        output: OutputImage,
        capabilities: PlatformCapabilities,
        view_url: str,
    ) -> Dict[str, Any]:
        if not capabilities.can_copy_image:
            return {"supported": False, "fallback": "view", "url": view_url}
        return {
            "supported": True,
            "mime": output.mime_type,
            "data": output.to_base64(),
            "data_url": output.to_data_url(),
        }

    @staticmethod
    def share_payload(
        output: OutputImage,
        capabilities: PlatformCapabilities,
        download_url: str,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": SHARE_TITLE, "text": SHARE_TEXT}
        if not capabilities.can_share_files:
            payload.update(supported=False, fallback="download", url=download_url)
            return payload

        payload.update(
            supported=True,
            files=[{
                "name": output.filename,
                "mime": output.mime_type,
                "data": output.to_base64(),
            }],
        )
        return payload
