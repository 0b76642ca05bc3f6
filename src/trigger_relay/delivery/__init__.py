"""
Package: delivery
Description: Webhook delivery for detected trigger events.

Provides the HTTP delivery unit that sends one webhook per attempt and
the fixed backoff table that schedules retries of failed attempts.
"""
