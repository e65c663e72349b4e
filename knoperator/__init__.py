"""Manifest loading and transforms, release resolution, install and health checks for Knative components."""

__version__ = "0.1.0"