"""acme-issuer internal implementation. Not a public API."""
