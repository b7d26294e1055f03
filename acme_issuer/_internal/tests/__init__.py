"""acme-issuer tests"""
