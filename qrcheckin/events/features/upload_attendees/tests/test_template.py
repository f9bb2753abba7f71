"""Tests for the downloadable upload template."""

import io
from datetime import UTC, datetime

import pytest
from openpyxl import load_workbook

from qrcheckin.events.features.issue_credentials.issuer import CredentialIssuer
from qrcheckin.events.features.upload_attendees.importer import AttendeeImporter
from qrcheckin.events.features.upload_attendees.template import (
    SAMPLE_ROWS,
    TEMPLATE_FILENAME,
    build_template_xlsx,
)
from qrcheckin.events.repository.tests.inmemory_models import InMemoryAttendeeStore


def test_template_has_headers_and_instructions():
    workbook = load_workbook(io.BytesIO(build_template_xlsx()))

    assert workbook.sheetnames == ["Attendees", "Instructions"]
    header = [cell.value for cell in workbook["Attendees"][1]]
    assert header == [
        "name",
        "email",
        "phone",
        "Attending Adults",
        "Adult Veg Food",
        "Adult Non-Veg Food",
        "Kids Food",
    ]
    assert workbook["Attendees"]["A1"].font.bold is True


@pytest.mark.asyncio
async def test_template_imports_without_row_errors():
    store = InMemoryAttendeeStore()
    event = await store.create_event("Diwali Night", datetime(2026, 11, 8, tzinfo=UTC), "Community Hall")
    importer = AttendeeImporter(store, CredentialIssuer(store))

    result = await importer.import_file(event.uuid, TEMPLATE_FILENAME, build_template_xlsx())

    assert result.success_count == len(SAMPLE_ROWS)
    assert result.failed_count == 0
    assert result.errors == []
    rajesh = await store.find_attendee_by_email(event.uuid, "rajesh.kumar@example.com")
    assert rajesh.phone == "904-555-0101"
    assert (rajesh.adults, rajesh.adult_veg_meals, rajesh.adult_non_veg_meals, rajesh.kid_meals) == (2, 2, 0, 1)
