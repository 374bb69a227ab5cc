"""Error taxonomy shared by the session, reminder and memory layers."""


class VoiceTimeError(Exception):
    """Base class for subsystem errors."""


class VoiceTimeValidationError(VoiceTimeError, ValueError):
    """Argument missing or malformed. Raised before any state is touched."""


class ExternalStoreError(VoiceTimeError):
    """The long-term memory store could not complete a call."""
