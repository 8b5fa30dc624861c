"""
AI agents for the teaching loop.

This package contains the pieces that talk to the generative model:
- StudentAgent: plays Aily, the AI student, and classifies its own replies
- Orchestrator: runs one teaching turn and feeds the outcome into knowledge state
"""
