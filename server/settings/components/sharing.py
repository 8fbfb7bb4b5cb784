"""Group sharing and reaper settings."""

from server.settings.components import config

# Seconds between two reaper ticks
SHARING_REAPER_INTERVAL = config(
    'SHARING_REAPER_INTERVAL',
    cast=int,
    default=60,
)

# Upper bound for concurrent directory removals within one tick
SHARING_REAPER_MAX_WORKERS = config(
    'SHARING_REAPER_MAX_WORKERS',
    cast=int,
    default=8,
)

# What happens to memberships and owned groups when a user is deleted:
# 'preserve' deletes only the user row, 'cascade' also revokes memberships
# and deactivates the groups the user owns.
SHARING_USER_DELETION_POLICY = config(
    'SHARING_USER_DELETION_POLICY',
    default='preserve',
)
