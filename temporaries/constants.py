"""Option name prefixes and fixed values for temporaries.

Single source of truth for the names under which value and timeout
records are stored in the options table.
"""

from typing import FrozenSet

MINUTE_IN_SECONDS = 60
HOUR_IN_SECONDS = 60 * MINUTE_IN_SECONDS
DAY_IN_SECONDS = 24 * HOUR_IN_SECONDS
WEEK_IN_SECONDS = 7 * DAY_IN_SECONDS
MONTH_IN_SECONDS = 30 * DAY_IN_SECONDS
YEAR_IN_SECONDS = 365 * DAY_IN_SECONDS

# =============================================================================
# OPTION NAME PREFIXES
# =============================================================================

LOCAL_PREFIX = '_temporary_'
LOCAL_TIMEOUT_PREFIX = '_temporary_timeout_'

NETWORK_PREFIX = '_site_temporary_'
NETWORK_TIMEOUT_PREFIX = '_site_temporary_timeout_'

# =============================================================================
# TABLES
# =============================================================================

OPTIONS_TABLE = 'options'
SITEMETA_TABLE = 'sitemeta'

# Network temporaries that never have a timeout. Listed so that
# querying their timeouts can be avoided.
NETWORK_NO_TIMEOUT_KEYS: FrozenSet[str] = frozenset([
    'update_core',
    'update_plugins',
    'update_themes',
])
