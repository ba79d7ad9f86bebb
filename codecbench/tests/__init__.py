"""
Test suite for codecbench.

Focus areas:
- Random source reproducibility and round-trip transparency
- Encoder compute determinism
- Codec fidelity and format rejection
- Harness fail-fast behavior and cleanup
"""
