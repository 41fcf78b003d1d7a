# Cache entries live five minutes; the refresher re-publishes one minute early.
CACHE_TTL_SECONDS = 5 * 60
CACHE_REFRESH_INTERVAL_SECONDS = 4 * 60

# iCafeCloud envelope "code" for a successful call
ICAFE_SUCCESS_CODE = 200

# Date format for billingLogs date_start / date_end
ICAFE_DATE_FORMAT = "%Y-%m-%d"
