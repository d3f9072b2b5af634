"""Run Apex tests through the Salesforce CLI and gate org-wide coverage."""

__version__ = "0.1.0"
