"""Rotas de webhooks de entrada (GitHub, SendGrid, Stripe) e runtime de tasks."""
