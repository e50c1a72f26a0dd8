"""Weekly period planner: constraint-validated class placement and what-if analysis."""
