"""
Test suite for the simulation kernel.

Focus areas:
- Dispatch ordering (time order, FIFO ties)
- Continuation resume with values and failures
- Causal traces
- Failure policy and capability mismatches
"""
