"""issues/ -- Issue records and the owner-joined read path.

Layer rule: issues/ imports from auth.store (shared schema) and core/ only.
"""
