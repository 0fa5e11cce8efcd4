"""
Payments Module

Razorpay order creation and signature verification, new-applicant
checkout, and the existing-student payment portal.

Endpoints:
- POST /api/order - Create a Razorpay order
- POST /api/verify - Verify a checkout signature
- POST /api/v1/session/payment/quote - Price a payment option
- POST /api/v1/session/payment/checkout - Create an order for the application
- POST /api/v1/session/payment/complete - Verify and complete the application
- POST /api/v1/session/payment/cancel - Clear a dismissed checkout
- /api/v1/payment-portal/* - Existing-student fee payments
"""
