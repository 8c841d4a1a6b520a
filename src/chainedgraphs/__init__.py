"""
chainedgraphs: resolve and execute chains of linked directed graphs.

Several independent graphs are linked node-to-node into one chain, merged
into a single level-partitioned execution plan, and run with explicit
failure semantics.
"""

__version__ = "0.1.0"
