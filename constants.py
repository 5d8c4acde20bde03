"""App-wide constants: storage keys, endpoint paths, request defaults."""

APP_NAME = "Wellvantage"

DEFAULT_TIMEOUT = 30.0  # seconds

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Key-value store keys
AUTH_TOKEN_KEY = "@wellvantage/auth_token"
REFRESH_TOKEN_KEY = "@wellvantage/refresh_token"
USER_DATA_KEY = "@wellvantage/user_data"

# Endpoints
AUTH_GOOGLE_PATH = "/auth/google"
AUTH_REFRESH_PATH = "/auth/refresh"
AUTH_ME_PATH = "/auth/me"
CLIENTS_PATH = "/clients"
WORKOUT_PLANS_PATH = "/workout/plans"
AVAILABILITY_PATH = "/calendar/availability"
AVAILABILITY_BATCH_PATH = "/calendar/availability/batch"

# 401 on these never triggers a refresh
NO_REFRESH_PATHS = frozenset({AUTH_REFRESH_PATH, AUTH_GOOGLE_PATH})

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
