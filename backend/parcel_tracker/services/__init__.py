"""
Service layer: database workflows around the pure simulator
- simulation_config: the single loader of the tenant-wide SimulationConfig
- deliveries: create, status update, event plan replacement, regeneration
- notifications: structured notification data, fire-and-forget dispatch
"""
