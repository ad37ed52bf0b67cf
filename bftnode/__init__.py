"""Building blocks of a PBFT replica node: settings, queues, timers and run control."""

__version__ = "0.1.0"