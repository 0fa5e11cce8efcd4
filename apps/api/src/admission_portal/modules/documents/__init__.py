"""
Documents Module

Printable PDFs: the admission form (GET /session/application.pdf) and the
existing-student payment receipt (GET /payment-portal/receipt.pdf).
"""
