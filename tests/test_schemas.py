from datetime import datetime, timezone, timedelta

import pytest
from pydantic import ValidationError

from bunkerdesk.schemas.contacts import ContactCreateSchema, ContactStatusSchema, VesselCreateSchema
from bunkerdesk.schemas.fuel_deals import FuelDealCreateSchema
from bunkerdesk.schemas.goals import GoalCreateSchema
from bunkerdesk.schemas.notes import NoteShareSchema
from bunkerdesk.schemas.preferences import WorkspaceCreateSchema, check_preference_key
from bunkerdesk.schemas.tasks import TaskCreateSchema
from bunkerdesk.utils.phone_utils import clean_phone_number


def test_contact_create_defaults_and_blank_optionals():
    contact = ContactCreateSchema(name="  Oceanic Shipping  ", email="", reminder_days="", phone="  ")

    assert contact.name == "Oceanic Shipping"
    assert contact.phone_type == "office"
    assert contact.email is None
    assert contact.reminder_days is None
    assert contact.phone is None
    assert contact.is_client is False


@pytest.mark.parametrize("field,value", [
    ("reminder_days", 0),
    ("priority_rank", 6),
    ("company_size", "huge"),
    ("phone_type", "pager"),
])
def test_contact_create_rejects_out_of_range_values(field, value):
    with pytest.raises(ValidationError):
        ContactCreateSchema(name="Oceanic", **{field: value})


def test_contact_status_only_accepts_known_flags():
    assert ContactStatusSchema(field="is_jammed", value=True).field == "is_jammed"
    with pytest.raises(ValidationError):
        ContactStatusSchema(field="is_admin", value=True)


def test_vessel_imo_is_normalized_to_digits():
    assert VesselCreateSchema(vessel_name="Nordic Star", imo_number="IMO 9321483").imo_number == "9321483"
    with pytest.raises(ValidationError):
        VesselCreateSchema(vessel_name="Nordic Star", imo_number="12345")


def test_fuel_deal_requires_a_vessel_and_positive_quantity():
    deal = FuelDealCreateSchema(
        contact_id=1,
        vessel_name="Nordic Star",
        fuel_quantity=500,
        fuel_type="VLSFO",
        deal_date=datetime(2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=8))),
        port="Singapore",
    )
    assert deal.deal_date == datetime(2024, 5, 1, 2, 0)
    assert deal.deal_date.tzinfo is None

    with pytest.raises(ValidationError):
        FuelDealCreateSchema(contact_id=1, fuel_quantity=500, fuel_type="VLSFO",
                             deal_date=datetime(2024, 5, 1), port="Singapore")

    with pytest.raises(ValidationError):
        FuelDealCreateSchema(contact_id=1, vessel_name="Nordic Star", fuel_quantity=0,
                             fuel_type="VLSFO", deal_date=datetime(2024, 5, 1), port="Singapore")


def test_task_type_is_validated():
    assert TaskCreateSchema(title="Call back re: quote").task_type == "other"
    with pytest.raises(ValidationError):
        TaskCreateSchema(title="Call back", task_type="meeting")


def test_goal_times_are_normalized_to_hhmm():
    goal = GoalCreateSchema(goal_type="calls", target_amount=10, target_time="17:30:00",
                            start_time="9:05", target_date="2024-05-01")
    assert goal.target_time == "17:30"
    assert goal.start_time == "09:05"

    with pytest.raises(ValidationError):
        GoalCreateSchema(goal_type="calls", target_amount=10, target_time="25:00", target_date="2024-05-01")
    with pytest.raises(ValidationError):
        GoalCreateSchema(goal_type="meetings", target_amount=10, target_time="17:00", target_date="2024-05-01")


def test_note_share_needs_a_recipient():
    assert NoteShareSchema(email="broker@example.com").can_edit is False
    with pytest.raises(ValidationError):
        NoteShareSchema(can_edit=True)


def test_workspace_color_is_upper_cased_hex():
    assert WorkspaceCreateSchema(name="Singapore desk", color="#3b82f6").color == "#3B82F6"
    with pytest.raises(ValidationError):
        WorkspaceCreateSchema(name="Singapore desk", color="blue")


def test_preference_keys_are_checked():
    check_preference_key("ui", "button_order")
    with pytest.raises(ValueError):
        check_preference_key("ui", "theme")
    with pytest.raises(ValueError):
        check_preference_key("billing", "plan")


@pytest.mark.parametrize("raw,expected", [
    ("+44 20 7946 0000", "+442079460000"),
    ("0065-6123-4567", "+6561234567"),
    ("(020) 7946", "0207946"),
    ("ext.", None),
    ("", ""),
])
def test_clean_phone_number(raw, expected):
    assert clean_phone_number(raw) == expected
