"""
Learned relevance layer — a small LightGBM classifier over favorites.

Modules
-------
scorer       : Scorer ABC (train / activate / serialize / deserialize) and
               the backend registry used to revive persisted blobs.
lgbm_scorer  : LightGBMScorer — deterministic binary classifier tuned for
               tens of rows; serializes to LightGBM's text model format.
trainer      : build_training_set() / train_model() — favorites as positives,
               synthetic random views as negatives.
lifecycle    : ModelLifecycleManager — persist, load, retrain policy.
"""
