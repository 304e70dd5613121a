from src.drip.engine.engine import AutomationEngine

__all__ = ["AutomationEngine"]
