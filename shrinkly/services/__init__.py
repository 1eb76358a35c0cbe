"""
Services module for business logic separation.

This module contains service classes that encapsulate business logic,
keeping it separate from API endpoints and database models:
- LinkResolver and ClickRecorder: the redirect and click recording path
- AnalyticsAggregator: read-side analytics queries
- LinkService: link lifecycle
"""
