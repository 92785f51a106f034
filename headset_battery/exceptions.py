"""Exception hierarchy for headset-battery."""


class HeadsetBatteryError(Exception):
    """Base class for all headset-battery errors."""


class ConfigError(HeadsetBatteryError):
    """Invalid configuration value or command-line option."""


class ProviderError(HeadsetBatteryError):
    """A battery provider could not do its job."""


class ProviderUnavailableError(ProviderError):
    """The device service could not be queried for this cycle.

    Transient: the monitor keeps running and retries on the next trigger.
    """


class SubscriptionError(ProviderError):
    """Change notifications could not be subscribed to. Fatal in listen mode."""
