"""
Package: courier_webhooks
Description: Courier delivery-status webhook ingestion and retry service.

Accepts DoorDash and Uber delivery webhooks, verifies their signatures,
normalizes them into a provider-agnostic event model and drives
processing with bounded, durable retries.
"""

__version__ = "0.3.0"
