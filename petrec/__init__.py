"""
petrec - pet treat recommendation over multi-turn conversation

- Client-held conversation state, merged turn by turn
- Context (occasion) matching against a fixed catalog
- Progressive constraint relaxation that never drops allergen exclusion
"""

from petrec.core.orchestrator import TurnOrchestrator, TurnResult, TurnPhase
from petrec.core.config import PetRecConfig, get_config, set_config

__all__ = [
    'TurnOrchestrator',
    'TurnResult',
    'TurnPhase',
    'PetRecConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
