# ==================================================
# 🔑 Redis Keys (burn notifications)
# ==================================================

BURN_EVENTS_CHANNEL = "burns:events"

# Bounded list of the most recent burn notifications (newest first)
BURN_EVENTS_RECENT_KEY = "burns:events:recent"
BURN_EVENTS_RECENT_MAX = 500
