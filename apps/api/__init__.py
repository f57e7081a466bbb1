"""
REST API application for the guard staffing console.

This app exposes read-only shift registry snapshots to the console front end:
- Day schedule with summary counters
- Week and month calendars bucketed by date
- Pass-through registry credentials via the Authorization header or session

Built with Django REST Framework.
"""
