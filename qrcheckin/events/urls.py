CHECKIN_PREFIX = "/api/v1/checkin"

EVENTS_URL = f"{CHECKIN_PREFIX}/events"
EVENT_URL = EVENTS_URL + "/{event_id}"

LIST_ATTENDEES_URL = EVENT_URL + "/attendees"
UPLOAD_ATTENDEES_URL = EVENT_URL + "/attendees/upload"
UPLOAD_TEMPLATE_URL = EVENT_URL + "/attendees/template"

DISPATCH_URL = EVENT_URL + "/dispatch"
STOP_DISPATCH_URL = DISPATCH_URL + "/stop"
RETRY_ATTENDEE_URL = CHECKIN_PREFIX + "/attendees/{attendee_id}/retry"

CHECK_IN_URL = EVENT_URL + "/check-in"
CHECK_IN_STATS_URL = CHECK_IN_URL + "/stats"
VERIFY_URL = EVENT_URL + "/verify"
