"""ASGI server glue: request handling, error boundary, response sending."""
