"""
Finchat - Source Package

A conversational personal-finance ledger. Users describe their spending
and income in plain language and the assistant records it.

DESIGN PRINCIPLES:
1. The LLM classifies, the ledger decides
2. Fail early, fail visibly
3. No silent corrections of model output
4. Every message is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finchat Team"
