"""auth/ -- Password hashing, access tokens and permission checks for Unpacking.

Layer rule: auth/ imports core/ and third-party libraries only.
It does NOT import from api/ or db/ at runtime.
api/ imports from auth/, not the other way around.
"""
