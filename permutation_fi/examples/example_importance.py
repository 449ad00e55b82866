"""
Example: Permutation Feature Importance

Demonstrates the shuffle and exact-pairs methods on a synthetic regression
task and a classification task scored with 1 - AUC.

Usage:
    python -m permutation_fi.examples.example_importance
    python -m permutation_fi.examples.example_importance --n-repetitions 50 --n-jobs 4
"""

import argparse
import logging

from sklearn.datasets import make_classification
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import train_test_split

from permutation_fi import compute
from permutation_fi.datasets import make_friedman_data


def print_banner(text):
    """Print a nice banner."""
    width = 60
    print("\n" + "=" * width)
    print(text)
    print("=" * width)


def example_regression(n_repetitions, n_jobs, random_seed):
    """Friedman regression with a random forest, MAE loss."""
    print_banner("Example 1: Regression Task")

    X, y = make_friedman_data(n=600, p=8, noise=1.0, as_frame=True, random_state=random_seed)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.3, random_state=random_seed
    )

    print("\nTraining Random Forest Regressor...")
    model = RandomForestRegressor(n_estimators=100, random_state=random_seed)
    model.fit(X_train, y_train)
    print(f"Test R²: {model.score(X_test, y_test):.4f}")

    print(f"\nShuffle method ({n_repetitions} repetitions, ratio mode)...")
    table = compute(
        model, X_test, y_test, 'mae',
        n_repetitions=n_repetitions,
        random_seed=random_seed,
        n_jobs=n_jobs
    )
    print(f"Baseline MAE: {table.baseline_error:.4f}")
    print(table.to_frame()[['rank', 'feature', 'importance', 'std', 'q05', 'q95']].to_string(index=False))

    print("\nExact pairs method on the first 60 test rows (difference mode)...")
    exact = compute(
        model, X_test.iloc[:60], y_test[:60], 'mae',
        method='exact_pairs',
        score_mode='difference',
        feature_subset=['x0', 'x3', 'x7'],
        n_jobs=n_jobs
    )
    for record in exact:
        low, high = record.confidence_interval(0.95)
        print(f"  {record.feature:<4} {record.importance:>8.4f}  [{low:.4f}, {high:.4f}]")


def example_classification(n_repetitions, n_jobs, random_seed):
    """Binary classification with logistic regression, 1 - AUC loss."""
    print_banner("Example 2: Classification Task")

    X, y = make_classification(
        n_samples=1000,
        n_features=6,
        n_informative=3,
        n_redundant=0,
        shuffle=False,
        random_state=random_seed
    )
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.3, random_state=random_seed, stratify=y
    )

    model = LogisticRegression(max_iter=1000).fit(X_train, y_train)

    table = compute(
        model, X_test, y_test, 'one_minus_auc',
        n_repetitions=n_repetitions,
        score_mode='difference',
        random_seed=random_seed,
        response_method='predict_proba',
        n_jobs=n_jobs
    )
    print(f"\nBaseline 1 - AUC: {table.baseline_error:.4f}")
    print("\nTop 3 Features:")
    for record in table.records[:3]:
        print(f"  {record.feature}: {record.importance:.4f} ± {record.std:.4f}")


def main():
    parser = argparse.ArgumentParser(description="Permutation feature importance examples")
    parser.add_argument('--n-repetitions', type=int, default=20, help='Shuffles per feature (default: 20)')
    parser.add_argument('--n-jobs', type=int, default=1, help='Worker threads (default: 1)')
    parser.add_argument('--random-state', type=int, default=42, help='Random seed (default: 42)')
    parser.add_argument('--verbose', action='store_true', help='Show engine log messages')
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s %(levelname)s: %(message)s')

    example_regression(args.n_repetitions, args.n_jobs, args.random_state)
    example_classification(args.n_repetitions, args.n_jobs, args.random_state)


if __name__ == "__main__":
    main()
