"""
Administration of a Google Workspace domain from the command line, built on
the Google API Python client.

Resources (users, groups, org units, calendar events and so on) are Python
dataclasses and the API operations on them are static methods of those
classes, translating between the dataclasses and the raw dicts the client
deals in.  List responses can be kept in a small file cache and every result
goes through one formatter that knows json, yaml, csv, table and plain text.
"""

__version__ = "0.1.0"
