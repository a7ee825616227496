"""
Sales Coach Engine - conversation analysis and coaching lifecycle.

This package provides:
- Methodology scoring of sales-call transcripts (Sandler, MEDDIC, Challenger, SPIN, Gap)
- Weak-area selection and knowledge-base retrieval for practice scripts
- Plain-text coaching drafts and the manager/rep coaching message lifecycle
"""

__version__ = "0.1.0"
