"""
Shift registry application.

Turns the flat shift lists returned by the remote registry service into
console-ready data:
- Normalizing raw records into shift view models
- Classifying lifecycle status, day/night type and interactivity
- Bucketing shifts by calendar date for week and month views
- Orchestrating per-scope fetches (day, week, month) with stale-response suppression
"""
