"""
Collection request business logic

Main components:
- RequestLifecycleManager: owns request state changes and their side effects
- ValidationChain: ordered rule stages gating every mutation
- scheduler: pure collection-date computation
- points: award formula and preview strategies
- ConfigStore: atomic activation of points configurations
- EventBus: synchronous fan-out of lifecycle events
- notifications: middleware pipeline behind the notification observer
"""
