"""Bounded contexts taking part in the order fulfilment choreography."""
