IOS_BACKGROUND_FETCH_INTERVAL_MINUTES = 15


def resolve_background_fetch_interval_minutes(platform: str, requested_minutes: int) -> int:
    """Effective wake interval to register.

    iOS decides when background fetch actually runs, so the app always
    registers the platform minimum there. Other platforms get the requested
    interval as is.
    """
    if platform == "ios":
        return IOS_BACKGROUND_FETCH_INTERVAL_MINUTES
    return requested_minutes
