"""MindScribe: personal writing with a draft/publish workflow."""

__version__ = "0.1.0"
