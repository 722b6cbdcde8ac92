"""
Backend service for rice field monitoring.

Observers submit field observations (growth stage, plant conditions, trait
measurements and media). Submissions are persisted to a document store and
mirrored into every registered spreadsheet for offline reporting.
"""
