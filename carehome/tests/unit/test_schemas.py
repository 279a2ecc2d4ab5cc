"""Unit tests for partial-update request bodies."""

import pytest
from pydantic import ValidationError

from carehome.api.schemas.activity import EventUpdate
from carehome.api.schemas.clinical import CarePlanUpdate, IncidentUpdate, MedicationUpdate
from carehome.api.schemas.people import ProfileUpdate, ResidentUpdate, StaffUpdate


@pytest.mark.parametrize(
    ("schema", "field"),
    [
        (ProfileUpdate, "full_name"),
        (ProfileUpdate, "role"),
        (ResidentUpdate, "room_number"),
        (StaffUpdate, "department"),
        (IncidentUpdate, "title"),
        (CarePlanUpdate, "goals"),
        (EventUpdate, "start_time"),
    ],
)
def test_null_rejected_for_required_columns(schema, field):
    with pytest.raises(ValidationError) as exc_info:
        schema.model_validate({field: None})
    assert exc_info.value.errors()[0]["loc"] == (field,)


@pytest.mark.parametrize(
    ("schema", "field"),
    [
        (ProfileUpdate, "avatar_url"),
        (IncidentUpdate, "assigned_to"),
        (MedicationUpdate, "end_date"),
        (MedicationUpdate, "notes"),
    ],
)
def test_null_clears_nullable_columns(schema, field):
    assert schema.model_validate({field: None}).model_dump(exclude_unset=True) == {field: None}


def test_omitted_fields_stay_unset():
    assert ResidentUpdate.model_validate({"care_level": "LOW"}).model_dump(exclude_unset=True) == {
        "care_level": "LOW"
    }
