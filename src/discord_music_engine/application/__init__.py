"""
Application Layer

Orchestrates domain objects and infrastructure to fulfil use cases.

Structure:
- commands/: playback control command shape
- queries/: queue and now-playing read models
- services/: catalog routing, alternative matching, playback sessions
- interfaces/: port interfaces for infrastructure adapters
"""
