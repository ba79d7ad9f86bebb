"""
codecbench CLI - Codec Equivalence Benchmark

Commands:
- codecbench run - All three benchmarks, in order
- codecbench random / encoder - A single benchmark
- codecbench inspect / convert - Encoded blob tools
"""
