"""
Offline Sync: Offline Content Synchronization Engine

Fetches a list of remote web pages, extracts their meaningful content into
standalone HTML documents, and keeps a persistent URL index so a host
application can later serve those pages without network access.
"""

__version__ = "1.0.0"
__author__ = "Offline Sync Project"
__description__ = "Offline Content Synchronization Engine"
