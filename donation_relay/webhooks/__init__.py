"""
Module 'webhooks': classification des événements Stripe et envoi des notifications.
Importer directement webhooks.events / webhooks.dispatcher.
"""
