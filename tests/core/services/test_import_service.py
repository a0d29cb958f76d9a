"""Tests for the CSV lead importer."""

from uuid import uuid4

import pytest

from core.errors import NotFound, ValidationError
from core.models import LeadStatus, ListingType, Priority, PropertyType
from core.services.import_service import DuplicatePolicy
from utils.actor_context import actor_context

HEADER = "FirstName,LastName,Phone,Email,PropertyType,ListingType,Budget,Bedrooms,Districts,Status,Priority\n"


def _csv(*rows: str, header: str = HEADER) -> str:
    return header + "".join(row + "\n" for row in rows)


class TestImportNew:

    def test_row_errors_do_not_stop_the_batch(self, import_service, lead_service, as_owner):
        raw = _csv(
            'Nino,Beridze,+995 599 000 001,nino@example.ge,APARTMENT,SALE,"120,000",2,"Vake, Saburtalo",,',
            "Dato,Kapanadze,+995 599 000 002,,CASTLE,RENT,,,,,",
        )

        result = import_service.import_leads(raw)

        assert (result.success, result.failed, result.skipped) == (1, 1, 0)
        assert result.errors[0].row == 2
        assert "PropertyType" in result.errors[0].error
        assert "CASTLE" in result.errors[0].error
        assert result.errors[0].data["firstname"] == "Dato"

        lead = result.imported[0]
        assert lead.property_type == PropertyType.APARTMENT
        assert lead.listing_type == ListingType.SALE
        assert lead.budget == 120000
        assert lead.bedrooms == 2
        assert lead.districts == ["Vake", "Saburtalo"]
        assert lead.status == LeadStatus.NEW
        assert len(lead_service.find()) == 1

    def test_enum_values_are_case_and_separator_insensitive(self, import_service, as_owner):
        raw = _csv("Ana,K,555 010 3000,,Townhouse,daily-rent,,,,qualified,Urgent")

        lead = import_service.import_leads(raw).imported[0]

        assert lead.property_type == PropertyType.TOWNHOUSE
        assert lead.listing_type == ListingType.DAILY_RENT
        assert lead.status == LeadStatus.QUALIFIED
        assert lead.priority == Priority.URGENT

    @pytest.mark.parametrize("row,message", [
        (",K,555 010 3001,,,,,,,,", "Missing required fields: FirstName"),
        ("Ana,K,12,,,,,,,,", "Invalid phone number"),
        ("Ana,K,555 010 3002,not-mail,,,,,,,", "Invalid Email"),
        ("Ana,K,555 010 3003,,,,lots,,,,", "Invalid Budget"),
        ("Ana,K,555 010 3004,,,,-5,,,,", "Invalid Budget"),
        ("Ana,K,555 010 3005,,,,,two,,,", "Invalid Bedrooms"),
        ("Ana,K,555 010 3006,,,,,,,SIGNED,", "Invalid Status"),
    ])
    def test_row_validation(self, import_service, as_owner, row, message):
        result = import_service.import_leads(_csv(row))

        assert result.failed == 1
        assert message in result.errors[0].error

    def test_default_assignee(self, import_service, as_owner, agent):
        result = import_service.import_leads(_csv("Ana,K,555 010 3100,,,,,,,,"), default_assigned_to=agent.id)
        assert result.imported[0].assigned_to_id == agent.id

    def test_unknown_default_assignee_imports_nothing(self, import_service, lead_service, as_owner):
        with pytest.raises(NotFound):
            import_service.import_leads(_csv("Ana,K,555 010 3101,,,,,,,,"), default_assigned_to=uuid4())
        assert lead_service.find() == []

    def test_runs_as_system_actor(self, import_service, as_system):
        assert import_service.import_leads(_csv("Ana,K,555 010 3102,,,,,,,,")).success == 1


class TestDuplicates:

    @pytest.fixture
    def existing(self, import_service, as_owner):
        return import_service.import_leads(_csv("Nino,Beridze,+995 599 000 001,,APARTMENT,,,,,,LOW")).imported[0]

    def test_skip_leaves_existing_untouched(self, import_service, lead_service, existing):
        result = import_service.import_leads(_csv("Nina,B,995599000001,,HOUSE,,,,,,"))

        assert (result.success, result.failed, result.skipped) == (0, 0, 1)
        assert lead_service.require(existing.id).first_name == "Nino"

    def test_update_overwrites_non_empty_fields(self, import_service, lead_service, existing):
        result = import_service.import_leads(
            _csv("Nina,Beridze,(995) 599-000-001,nina@example.ge,HOUSE,,,,,CONTACTED,"),
            policy=DuplicatePolicy.UPDATE,
        )

        assert (result.success, result.failed, result.skipped) == (1, 0, 0)
        lead = lead_service.require(existing.id)
        assert lead.first_name == "Nina"
        assert lead.email == "nina@example.ge"
        assert lead.property_type == PropertyType.HOUSE
        # Empty cells keep existing values; status only moves through transitions
        assert lead.priority == Priority.LOW
        assert lead.status == LeadStatus.NEW
        assert lead.phone == "+995 599 000 001"
        assert len(lead_service.find()) == 1

    def test_error_policy_reports_row(self, import_service, existing):
        result = import_service.import_leads(
            _csv("Nina,B,995599000001,,,,,,,,"), policy=DuplicatePolicy.ERROR,
        )
        assert result.failed == 1
        assert "Duplicate phone number" in result.errors[0].error

    def test_policy_accepts_plain_string(self, import_service, existing):
        assert import_service.import_leads(_csv("Nina,B,995599000001,,,,,,,,"), policy="error").failed == 1

    def test_duplicates_within_one_file(self, import_service, as_owner):
        result = import_service.import_leads(_csv(
            "Ana,K,555 010 3200,,,,,,,,",
            "Ana,K,555-010-3200,,,,,,,,",
        ))
        assert (result.success, result.skipped) == (1, 1)


class TestFileShape:

    def test_header_is_normalized(self, import_service, as_owner):
        raw = "\ufeffFirst Name, LAST NAME ,phone\nAna,K,555 010 3300\n"
        assert import_service.import_leads(raw).success == 1

    def test_missing_required_header(self, import_service, as_owner):
        with pytest.raises(ValidationError, match="Phone"):
            import_service.import_leads("FirstName,LastName\nAna,K\n")

    def test_empty_file(self, import_service, as_owner):
        with pytest.raises(ValidationError, match="empty"):
            import_service.import_leads("")

    def test_blank_rows_not_numbered(self, import_service, as_owner):
        raw = _csv("Ana,K,555 010 3400,,,,,,,,", "", ",,,,,,,,,,", "Bad,K,1,,,,,,,,")
        result = import_service.import_leads(raw)
        assert result.errors[0].row == 2

    def test_unknown_columns_ignored(self, import_service, as_owner):
        raw = "FirstName,LastName,Phone,Favourite Colour\nAna,K,555 010 3500,teal\n"
        assert import_service.import_leads(raw).success == 1

    def test_same_input_same_outcome(self, import_service, as_owner, agency_b_id):
        raw = _csv("Ana,K,555 010 3600,,,,,,,,", "Bob,K,555 010 3601,,CASTLE,,,,,,")
        first = import_service.import_leads(raw)
        with actor_context(agency_b_id):
            second = import_service.import_leads(raw)

        assert (first.success, first.failed) == (second.success, second.failed)
        assert [e.error for e in first.errors] == [e.error for e in second.errors]
