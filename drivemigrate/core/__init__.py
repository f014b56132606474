"""Settings, models, exceptions and connections shared by every job."""
