GENERATE_STAGES = [
    ("load_config", "Load config"),
    ("load_models", "Load models"),
    ("resolve_classifier", "Resolve classifier"),
    ("project_models", "Project models"),
    ("write_definitions", "Write definitions"),
]

LIST_PLUGINS_STAGES = [
    ("discover_classifiers", "Discover classifiers"),
]
