"""Branch protection reconciliation.

This package provides the primitives for:
- Rule catalog: the fixed, ordered set of enforced protection rules
- Normalization: turning GitHub's sparse protection document into a full state
- Diffing: ordered, rule-by-rule comparison of two states
- Strategies: overwrite and security-monotonic merge
- Applying: serializing a target state back into the GitHub update calls
"""
