"""
Unit Tests for Pydantic Schemas
"""
import pytest
from pydantic import ValidationError

from eservice.schemas.auth import SignupRequest, ChangePasswordRequest, LoginRequest
from eservice.schemas.office import OfficeCreate, OfficeUpdate
from eservice.schemas.report import ManagerReportCreate
from eservice.schemas.service import ServiceCreate, coerce_named_items


class TestSignupRequest:

    def _payload(self, **overrides):
        payload = {
            "name": "Abebe Kebede",
            "phone_number": "0911223344",
            "password": "secret123",
            "confirm_password": "secret123",
        }
        payload.update(overrides)
        return payload

    def test_phone_is_normalized(self):
        signup = SignupRequest(**self._payload())

        assert signup.phone_number == "+251911223344"
        assert signup.otp_code is None

    def test_blank_otp_treated_as_missing(self):
        assert SignupRequest(**self._payload(otp_code="  ")).otp_code is None

    @pytest.mark.parametrize("otp_code", ["12345", "abcdef", "1234567"])
    def test_otp_must_be_six_digits(self, otp_code):
        with pytest.raises(ValidationError):
            SignupRequest(**self._payload(otp_code=otp_code))

    def test_password_mismatch(self):
        with pytest.raises(ValidationError) as exc_info:
            SignupRequest(**self._payload(confirm_password="other123"))

        assert "Passwords do not match" in str(exc_info.value)

    def test_invalid_phone(self):
        with pytest.raises(ValidationError) as exc_info:
            SignupRequest(**self._payload(phone_number="091122"))

        assert "Invalid Ethiopian phone number" in str(exc_info.value)


def test_login_normalizes_phone():
    assert LoginRequest(phone_number="251911223344", password="x").phone_number == "+251911223344"


def test_change_password_must_differ():
    with pytest.raises(ValidationError) as exc_info:
        ChangePasswordRequest(current_password="secret123", new_password="secret123", confirm_password="secret123")

    assert "must be different" in str(exc_info.value)


class TestOfficeSchemas:

    def test_subdomain_lowercased(self):
        office = OfficeCreate(name="Addis", room_number="12", address="Bole", subdomain=" Addis-1 ")

        assert office.subdomain == "addis-1"

    @pytest.mark.parametrize("subdomain", ["addis_1", "addis.gov", "ad dis"])
    def test_subdomain_characters(self, subdomain):
        with pytest.raises(ValidationError):
            OfficeCreate(name="Addis", room_number="12", address="Bole", subdomain=subdomain)

    @pytest.mark.parametrize("logo,valid", [
        ("/api/upload/logo/a.png", True),
        ("https://cdn.example.com/logo.png", True),
        ("logo.png", False),
        ("ftp://example.com/logo.png", False),
    ])
    def test_logo(self, logo, valid):
        if valid:
            assert OfficeUpdate(logo=logo).logo == logo
        else:
            with pytest.raises(ValidationError):
                OfficeUpdate(logo=logo)

    def test_blank_update_fields_become_none(self):
        update = OfficeUpdate(slogan="", logo="  ")

        assert update.model_dump(exclude_none=True) == {}


class TestManagerReportRecipients:

    def test_single_string(self):
        assert ManagerReportCreate(report_sent_to="abc").recipient_ids() == ["abc"]

    def test_list_deduplicated_in_order(self):
        report = ManagerReportCreate(report_sent_to=["b", "a", " b ", "", "c", "a"])

        assert report.recipient_ids() == ["b", "a", "c"]

    def test_missing(self):
        assert ManagerReportCreate().recipient_ids() == []


class TestNamedItems:

    def test_coerce_strings(self):
        assert coerce_named_items(["Passport", {"name": "ID"}]) == [{"name": "Passport"}, {"name": "ID"}]

    def test_non_list_passthrough(self):
        assert coerce_named_items(None) is None

    def test_service_create(self):
        service = ServiceCreate(
            name="Passport renewal",
            description="Renew a passport",
            time_to_take="1 week",
            office_id="office-1",
            requirements=["Old passport"],
        )

        assert [item.name for item in service.requirements] == ["Old passport"]
