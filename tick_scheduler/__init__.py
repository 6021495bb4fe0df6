"""
Tick Turn Scheduler

Core modules:
- timer_store: per-actor timer/speed storage (registration order preserved)
- engine: tick/advance rules and next-actor selection
- actions: action catalog (tick costs, skill and situation modifiers)
- session: host layer that names actors and resolves action costs
- trace: helpers for producing per-step traces (no behavior changes)
"""
