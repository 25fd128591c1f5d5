"""Project knowledge toolkit: templates, changes, masterfiles, agent configs and health checks."""

__version__ = "0.1.0"