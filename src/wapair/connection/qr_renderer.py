"""QR code rendering for the linking payload.

The provider emits an opaque string that WhatsApp expects to scan. It is
rendered to a PNG and embedded in the web page as a data URL.
"""

import base64
import io

import qrcode
from qrcode.main import QRCode

from wapair.errors import QrRenderError


class QrRenderer:
    """Render QR payloads for display in a browser or terminal."""

    def __init__(
        self,
        box_size: int = 10,
        border: int = 2,
        dark: str = "#000000",
        light: str = "#ffffff",
    ):
        """Initialize renderer.

        Args:
            box_size: Pixels per QR module.
            border: Quiet zone in modules.
            dark: Fill colour.
            light: Background colour.
        """
        self.box_size = box_size
        self.border = border
        self.dark = dark
        self.light = light

    def _create_qr(self, payload: str) -> QRCode:
        if not payload:
            raise QrRenderError("QR payload is empty")
        qr = qrcode.QRCode(
            version=None,  # Auto-size
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        return qr

    def to_png(self, payload: str) -> bytes:
        """Render the payload as PNG bytes.

        Raises:
            QrRenderError: If the payload cannot be encoded.
        """
        try:
            qr = self._create_qr(payload)
            img = qr.make_image(fill_color=self.dark, back_color=self.light)
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
        except QrRenderError:
            raise
        except Exception as e:
            raise QrRenderError(f"Could not render QR code: {e}") from e
        return buffer.getvalue()

    def to_data_url(self, payload: str) -> str:
        """Render the payload as a ``data:image/png;base64,...`` URL."""
        png = self.to_png(payload)
        return "data:image/png;base64," + base64.b64encode(png).decode("ascii")

    def to_terminal(self, payload: str) -> str:
        """Render the payload as text using Unicode block characters."""
        try:
            qr = self._create_qr(payload)
            output = io.StringIO()
            qr.print_ascii(out=output, invert=True)
        except QrRenderError:
            raise
        except Exception as e:
            raise QrRenderError(f"Could not render QR code: {e}") from e
        return output.getvalue()
