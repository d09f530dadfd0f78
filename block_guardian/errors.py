class GuardianError(Exception):
    """Base class for recoverable guardian errors."""


class NoQuotaRemaining(GuardianError):
    """The daily emergency quota is used up; it refills on the next calendar day."""

    def __init__(self, last_reset: float):
        super().__init__("No emergency uses left for today")
        self.last_reset = last_reset


class EntryNotFound(GuardianError):
    """App metadata for a blocklist entry could not be resolved."""

    def __init__(self, app_id: str):
        super().__init__(f"No app found for {app_id!r}")
        self.app_id = app_id


class MalformedPersistedData(GuardianError):
    """A persisted record could not be parsed."""

    def __init__(self, record: str, detail: str = ""):
        msg = f"Malformed record {record!r}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.record = record
