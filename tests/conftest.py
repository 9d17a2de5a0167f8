import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def regression_df():
    """200 rows, 3 numeric predictors (one skewed, one with negatives), numeric target."""
    rng = np.random.default_rng(314)
    n = 200
    x1 = rng.lognormal(mean=0.0, sigma=0.7, size=n)
    x2 = rng.normal(loc=5.0, scale=2.0, size=n)
    x3 = rng.normal(loc=-1.0, scale=3.0, size=n)
    y = 3.0 * np.log(x1) + 0.5 * x2 - 0.8 * x3 + rng.normal(scale=0.5, size=n)
    return pd.DataFrame({"x1": x1, "x2": x2, "x3": x3, "y": y})


@pytest.fixture
def classification_df():
    """200 rows, binary yes/no target, numeric + categorical predictors with a few gaps."""
    rng = np.random.default_rng(7)
    n = 200
    x1 = rng.normal(size=n)
    x2 = rng.normal(loc=2.0, scale=1.5, size=n)
    color = rng.choice(["red", "green", "blue"], size=n)
    logit = 1.8 * x1 - 0.7 * (x2 - 2.0) + np.where(color == "red", 0.8, 0.0)
    target = np.where(rng.random(n) < 1 / (1 + np.exp(-logit)), "yes", "no")
    df = pd.DataFrame({"x1": x1, "x2": x2, "color": color, "target": target})
    df.loc[[3, 17, 40], "x2"] = np.nan
    df.loc[[5, 60], "color"] = np.nan
    return df


@pytest.fixture
def imbalanced_df():
    """100 rows, classes A: 80, B: 20."""
    rng = np.random.default_rng(0)
    return pd.DataFrame({
        "feature": rng.normal(size=100),
        "label": ["A"] * 80 + ["B"] * 20,
    })


@pytest.fixture
def multiclass_df():
    rng = np.random.default_rng(11)
    n = 150
    centers = {"setosa": (0.0, 0.0), "versicolor": (3.0, 3.0), "virginica": (0.0, 4.0)}
    rows = []
    for i in range(n):
        species = list(centers)[i % 3]
        cx, cy = centers[species]
        rows.append({"a": rng.normal(cx, 0.8), "b": rng.normal(cy, 0.8), "species": species})
    return pd.DataFrame(rows)
