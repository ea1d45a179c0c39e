from __future__ import annotations

import io
from datetime import date

import qrcode

from ..core.exceptions import NotFoundError, ValidationError
from ..parents.repository import ParentDirectory


def parent_credential_text(*, name: str, phone: str, parent_id: str | None, day: date) -> str:
    lines = [f"Name: {name}", f"Phone: {phone}"]
    if parent_id:
        lines.append(f"Parent ID: {parent_id}")
    lines.append(f"Date: {day.month}/{day.day}/{day.year}")
    return "\n".join(lines)


def alternate_credential_text(
    *, parent_name: str, alternate_name: str, phone: str, parent_id: str | None, day: date
) -> str:
    lines = [f"Parent: {parent_name}", f"Alternate Pickup by: {alternate_name}", f"Phone: {phone}"]
    if parent_id:
        lines.append(f"Parent ID: {parent_id}")
    lines.append(f"Date: {day.month}/{day.day}/{day.year}")
    return "\n".join(lines)


def render_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class CredentialService:
    """Builds the QR credential a parent (or their alternate) shows at pickup."""

    def __init__(self, parents: ParentDirectory):
        self._parents = parents

    def credential_text(self, parent_id: str, *, day: date, alternate_name: str | None = None) -> str:
        parent = self._parents.parent_by_id(parent_id)
        if not parent:
            raise NotFoundError(f"Parent {parent_id} not found")

        if alternate_name:
            phone = parent.alternate_phone if alternate_name == parent.alternate_name else None
            phone = phone or parent.phone
            if not phone:
                raise ValidationError(f"Parent {parent_id} has no phone on file")
            return alternate_credential_text(
                parent_name=parent.parent_name,
                alternate_name=alternate_name,
                phone=phone,
                parent_id=parent.parent_id,
                day=day,
            )

        if not parent.phone:
            raise ValidationError(f"Parent {parent_id} has no phone on file")
        return parent_credential_text(
            name=parent.parent_name,
            phone=parent.phone,
            parent_id=parent.parent_id,
            day=day,
        )

    def credential_png(self, parent_id: str, *, day: date, alternate_name: str | None = None) -> bytes:
        return render_qr_png(self.credential_text(parent_id, day=day, alternate_name=alternate_name))
