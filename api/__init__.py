"""api/ -- Boundary adapters: validated request payloads and FastAPI glue.

The HTTP router itself lives in the embedding application; it imports from
api/, auth/ and db/, never the other way around.
"""
