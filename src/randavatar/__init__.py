"""randavatar: rotate Slack profile photos on a per-user cadence."""

__version__ = "0.1.0"
