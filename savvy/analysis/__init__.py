from savvy.analysis.classifier import DEFAULT_RULES, ContextClassifier, DetectionRule

__all__ = ["DEFAULT_RULES", "ContextClassifier", "DetectionRule"]
