API_PREFIX = "/api/v1"

GET_PARTY_URL = API_PREFIX + "/guests/{token}/party"
UPDATE_RSVP_URL = API_PREFIX + "/guests/{token}/rsvp"

ADMIN_UPDATE_ATTENDANCE_URL = API_PREFIX + "/admin/guests/{guest_id}/attendance"
ADMIN_UPDATE_MEAL_URL = API_PREFIX + "/admin/guests/{guest_id}/meal"
