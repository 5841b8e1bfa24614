"""Internal constants shared across the library."""

USER_AGENT = "fleetsync/1"
API_PREFIX = "/v1"

# ------------------------------------------------------------------
# Collections
# ------------------------------------------------------------------

DRIVERS = "drivers"
VEHICLES = "vehicles"
LOCATIONS = "locations"
OPERATIONS = "operations"
INDUSTRIES = "industries"
RESPONSIBLES = "responsibles"
SCHEDULES = "schedules"
DAILY_STATUS = "daily-status"
MOBILE_USERS = "mobile-users"

COLLECTIONS: tuple[str, ...] = (
    DRIVERS,
    VEHICLES,
    LOCATIONS,
    OPERATIONS,
    INDUSTRIES,
    RESPONSIBLES,
    SCHEDULES,
    DAILY_STATUS,
    MOBILE_USERS,
)

# Collections whose views are always filtered by day.
DATED_COLLECTIONS: frozenset[str] = frozenset({SCHEDULES, DAILY_STATUS})

# ------------------------------------------------------------------
# Field names
# ------------------------------------------------------------------

ID_FIELD = "id"
DATE_FIELD = "date"
UPDATED_AT_FIELD = "updatedAt"

VEHICLES_FIELD = "vehicles"
DESTINATIONS_FIELD = "destinations"

PALLETS_REFRIG_FIELD = "palletsRefrig"
PALLETS_DRY_FIELD = "palletsSecos"
PALLETS_TOTAL_FIELD = "qtdPallets"
WEIGHT_FIELD = "peso"
INDUSTRY_FIELD = "industria"

DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
