"""HTTP primitives: immutable Request and Response, headers, cookies, forms."""
