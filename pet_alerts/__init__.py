"""Pet Alert Notifier: email adopters when a pet matching their preferences is listed."""

__version__ = "0.1.0"
