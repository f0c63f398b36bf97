# =============================================================================
# tests/unit/test_validation.py
# Unit Tests for peritagem form validation
# =============================================================================

import pytest

from sector_core.data.models import PhotoUpload, ServiceSelection
from sector_core.errors import ValidationError
from sector_core.services.validation import find_services_without_photos, form_errors, validate_peritagem


class TestValidatePeritagem:

    def test_valid_form_passes(self, valid_form):
        validate_peritagem(valid_form)

    @pytest.mark.parametrize("field, value", [
        ("tag_number", "  "),
        ("entry_invoice", ""),
        ("tag_photo_url", None),
    ])
    def test_required_fields(self, valid_form, field, value):
        setattr(valid_form, field, value)

        with pytest.raises(ValidationError) as exc_info:
            validate_peritagem(valid_form)

        assert exc_info.value.details["field"] == field

    def test_at_least_one_service(self, valid_form):
        for service in valid_form.services:
            service.selected = False

        with pytest.raises(ValidationError, match="at least one service"):
            validate_peritagem(valid_form)

    def test_selected_services_need_photos(self, valid_form):
        valid_form.services.append(ServiceSelection(service_id="svc-3", name="Solda", selected=True))

        with pytest.raises(ValidationError) as exc_info:
            validate_peritagem(valid_form)

        assert exc_info.value.details["missing"] == ["Solda"]

    def test_tag_number_checked_first(self, valid_form):
        valid_form.tag_number = ""
        valid_form.entry_invoice = ""

        with pytest.raises(ValidationError) as exc_info:
            validate_peritagem(valid_form)

        assert exc_info.value.details["field"] == "tag_number"


class TestHelpers:

    def test_find_services_without_photos_ignores_unselected(self):
        services = [
            ServiceSelection(service_id="1", name="A", selected=True),
            ServiceSelection(service_id="2", name="B", selected=False),
            ServiceSelection(service_id="3", name="C", selected=True, photos=[PhotoUpload(filename="c.jpg")]),
        ]
        assert find_services_without_photos(services) == ["A"]

    def test_form_errors_flags(self, valid_form):
        valid_form.entry_invoice = ""

        errors = form_errors(valid_form)

        assert errors["entry_invoice"]
        assert errors["entry_date"]
        assert not errors["tag_number"]
        assert not errors["photos"]
