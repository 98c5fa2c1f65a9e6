"""Example training each learner on in-memory columns and on a CSV file."""

import tempfile
import numpy as np
import pandas as pd
from pathlib import Path

import forestbridge as fb


def create_classification_columns():
    """Create sample classification columns."""
    np.random.seed(42)
    n_samples = 500

    income = np.random.gamma(2.0, 20000.0, n_samples)
    region = np.random.choice(["north", "south", "east", "west"], n_samples)
    # Target depends on income plus a region bump
    bump = np.where(region == "north", 15000.0, 0.0)
    churned = np.where(income + bump > 45000.0, "stayed", "churned")

    return [
        ("income", income.tolist()),
        ("region", region.tolist()),
        ("churned", churned.tolist()),
    ]


def create_ranking_frame():
    """Create sample ranking data: 50 queries with 10 documents each."""
    np.random.seed(7)
    n_queries, per_query = 50, 10

    query = np.repeat(np.arange(n_queries), per_query)
    score = np.random.rand(n_queries * per_query)
    relevance = np.digitize(score, [0.5, 0.8])

    return pd.DataFrame({"query": query, "score": score, "relevance": relevance})


def demonstrate_classification():
    """Train every classification learner on the same columns."""
    print("\n" + "=" * 60)
    print("CLASSIFICATION")
    print("=" * 60)

    columns = create_classification_columns()
    labels = dict(columns)["churned"]
    features = [(name, values) for name, values in columns if name != "churned"]

    for learner in ["GRADIENT_BOOSTED_TREES", "RANDOM_FOREST", "CART"]:
        handle = fb.train({
            "learner": learner,
            "task": "CLASSIFICATION",
            "label": "churned",
            "options": {"num_trees": 50, "random_seed": 42} if learner != "CART" else {"max_depth": 6},
        }, columns)

        scores = fb.predict(handle, features)
        # Scores are the probability of the second label class in vocabulary order
        positive = fb.data_spec(handle).column("churned").categorical.values()[2]
        accuracy = np.mean([(s > 0.5) == (label == positive) for s, label in zip(scores, labels)])
        print(f"  ✓ {learner:<24} train accuracy {accuracy:.3f}")


def demonstrate_files_and_persistence():
    """Train from a CSV reference, save, reload and predict."""
    print("\n" + "=" * 60)
    print("FILES AND PERSISTENCE")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        csv_path = temp_path / "ranking.csv"
        create_ranking_frame().to_csv(csv_path, index=False)

        forest = fb.Forest({
            "task": "RANKING",
            "label": "relevance",
            "log_directory": str(temp_path / "logs"),
            "options": {"ranking_group": "query", "num_trees": 30, "shrinkage": 0.1},
        })
        forest.train(f"csv:{csv_path}")
        print(f"  ✓ Trained ranking model, state: {forest.state.value}")

        forest.save(temp_path / "model")
        reloaded = fb.Forest.load(temp_path / "model")
        print(f"  ✓ Reloaded model columns: {reloaded.data_spec.column_names()}")

        scores = reloaded.predict(f"csv:{csv_path}")
        print(f"  ✓ {len(scores)} ranking scores, first query: {np.round(scores[:10], 2).tolist()}")
        print(f"  ✓ Training log: {(temp_path / 'logs' / 'training_log.json').exists()}")


if __name__ == "__main__":
    demonstrate_classification()
    demonstrate_files_and_persistence()
