"""
Guardpost Django applications package.

This package contains the Django apps for the guard staffing console:
- registry: Shift registry normalization, classification, calendar bucketing and fetch orchestration
- api: REST API endpoints serving registry snapshots to the console front end
"""
