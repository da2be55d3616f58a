"""Application layer: transactional use cases over the fulfillment domain."""
