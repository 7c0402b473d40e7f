"""Composable DNS query pipeline: chain core, plugins, matchers, a UDP upstream and config tools."""

__version__ = "0.1.0"