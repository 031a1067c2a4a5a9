"""
Lease Kernel - lifecycle consistency engine for rental operations.

Keeps properties, tenants, lease contracts and rent payments consistent:
- Contract state machine driven by explicit actions and calendar time
- Tenant/property synchronization on every contract transition
- Overlap protection against double-booking a property
- Payment status derivation and dashboard aggregation
"""

__version__ = "0.1.0"
