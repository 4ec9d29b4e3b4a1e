"""
FinPlan - Financial Projection & Intent Mutation Engine

Holds a personal financial plan (assets, liabilities, incomes, expenses),
projects it forward year by year, and applies structured intent actions
produced upstream by a language model.

DESIGN PRINCIPLES:
1. The model translates, the engine decides
2. Fail early, fail visibly
3. A batch is applied completely or not at all
4. Summaries are always recomputed, never patched
5. Persistence is swappable
"""

__version__ = "1.0.0"
__author__ = "FinPlan Team"
