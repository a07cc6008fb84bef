"""Karaf Client - run shell commands on a remote Karaf console over SSH."""

__version__ = "1.1.0"
