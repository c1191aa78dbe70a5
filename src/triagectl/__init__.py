"""triagectl -- CI failure triage: decide whether a failed job is a known flake."""

__version__ = "0.1.0"
