"""auth/ -- Authentication and session package for IssueDesk.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, web/, or issues/.
api/, web/ and issues/ import from auth/, not the other way around.
"""
