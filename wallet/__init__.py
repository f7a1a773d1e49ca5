"""
Wallet - Core Package

Personal-finance wallet core: billing cycles, voice-entered
transactions and spending reports.

DESIGN PRINCIPLES:
1. AI proposes → validation checks → store confirms
2. Fail visibly: every voice session ends in one clear message
3. No silent corrections
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Wallet Team"
