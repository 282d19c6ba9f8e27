"""
HumanitZ Log Tools

Parsing of HMZLog.log lines (envelope, event classification, damage sources) and
downloading of the server log files from Nitrado.
"""

__all__ = ['line_parser', 'event_classifier', 'damage_taxonomy', 'log_downloader']

from .log_downloader import HumanitZLogDownloader, LogInputs
