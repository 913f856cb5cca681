"""
Delivery simulation package
- status_machine: the single transition table for delivery statuses
- geo / estimator / scheduler: pure planning of future scheduled events
- event_executor / simulation_manager: applying due events to deliveries
- event_bus: Redis Stream publisher with in-memory fallback

Modules are imported directly (models depend on simulator.clock).
"""
