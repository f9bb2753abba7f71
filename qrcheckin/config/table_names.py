from enum import Enum


class TableNames(str, Enum):
    USERS = "users"
    EVENTS = "checkin_events"
    ATTENDEES = "attendees"
