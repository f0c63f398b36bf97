# =============================================================================
# sector_core/services/validation.py
# Peritagem form validation (runs before any network call)
# =============================================================================

from __future__ import annotations
from typing import Dict, Iterable, List

from sector_core.data.models import PeritagemForm, ServiceSelection
from sector_core.errors import ValidationError


def find_services_without_photos(services: Iterable[ServiceSelection]) -> List[str]:
    """Names of selected services that carry no photo."""
    return [s.name for s in services if s.selected and not s.photos]


def validate_peritagem(form: PeritagemForm) -> None:
    """
    Raise ValidationError for the first problem found on the form.

    Checks, in order: tag number, entry invoice, tag photo, at least one
    selected service, and a photo on every selected service.
    """
    if not form.tag_number.strip():
        raise ValidationError("Tag number is required", field="tag_number")

    if not form.entry_invoice.strip():
        raise ValidationError("Entry invoice is required", field="entry_invoice")

    if not form.tag_photo_url:
        raise ValidationError("Tag photo is required", field="tag_photo_url")

    selected = form.selected_services
    if not selected:
        raise ValidationError("Select at least one service", field="services")

    missing = find_services_without_photos(selected)
    if missing:
        raise ValidationError(
            f"Services without photos: {', '.join(missing)}",
            field="services",
            missing=missing,
        )


def form_errors(form: PeritagemForm) -> Dict[str, bool]:
    """Per-field error flags, for highlighting the form in the UI."""
    selected = form.selected_services
    return {
        "tag_number": not form.tag_number.strip(),
        "tag_photo": not form.tag_photo_url,
        "entry_invoice": not form.entry_invoice.strip(),
        "entry_date": form.entry_date is None,
        "services": not selected,
        "photos": bool(find_services_without_photos(selected)),
    }
