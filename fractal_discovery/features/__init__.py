"""
Feature extraction for the relevance scorer.

Modules
-------
extractor : extract_features() — FractalConfig → 11 normalized floats;
            build_feature_matrix() for the training set.
"""
