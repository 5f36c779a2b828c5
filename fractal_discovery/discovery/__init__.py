"""
Discovery engine — sample views, score them, return the best.

Modules
-------
validity     : EscapeTimeViewValidator, the reference view predicate.
bounds       : ParameterBounds and the per-family bounds provider.
scoring      : heuristic_score(), ml_score(), hybrid_score().
candidates   : generate_candidates() — uniform sampling within bounds.
orchestrator : discover_interesting_fractals() — generate, score, rank.
manager      : DiscoveryManager facade holding the current scorer.
"""
