"""
blockfee Core Module

Fee estimation internals:
- Fee rate histogram features
- Binary model artifacts and their feed-forward evaluator
- Two-model fee estimator orchestration
- Logging, configuration and metrics support
"""

__all__ = []
