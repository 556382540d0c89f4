from importlib.metadata import entry_points

CLASSIFIER_GROUP = "odmjson.classifiers"


def load_classifier(kind: str):
    for ep in entry_points(group=CLASSIFIER_GROUP):
        if ep.name == kind:
            return ep.load()
    raise ValueError(f"Unknown classifier type: {kind}")
