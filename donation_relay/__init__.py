"""
Relais de dons: création de sessions/intents Stripe et notifications e-mail
déclenchées par les webhooks Stripe.
"""

__version__ = "1.0.0"
