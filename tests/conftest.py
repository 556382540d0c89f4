from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from odmjson.projection.classifier import MongooseClassifier  # noqa: E402
from odmjson.projection.projector import SchemaProjector  # noqa: E402


@pytest.fixture
def projector() -> SchemaProjector:
    return SchemaProjector(MongooseClassifier())


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "project"
    project_dir.mkdir(parents=True)
    (project_dir / "models").mkdir()

    (project_dir / "odmjson.yaml").write_text(
        """
version: v1

models:
  - models/blog.yaml

classifier:
  type: mongoose
  with: {}

output:
  path: dist/definitions.json
  by_reference: false
""".strip()
        + "\n",
        encoding="utf-8",
    )

    (project_dir / "models" / "blog.yaml").write_text(
        """
models:
  User:
    fields:
      _id: ObjectId
      email: {type: String, required: true}
      password: {type: String, select: false}
      role: {type: String, enum: [admin, editor, reader]}
      active: Boolean
  Post:
    fields:
      title: {type: String, required: true}
      status: {type: String, enum: [draft, published]}
      score: {type: Number, min: 0, max: 5}
      publishedAt: Date
      author: {type: ObjectId, ref: User, required: true}
      tags: [String]
      readers:
        type: [{type: ObjectId, ref: User}]
      meta:
        fields:
          views: {type: Number, required: true}
          likes: Number
      comments:
        type:
          - fields:
              body: {type: String, required: true}
              author: {type: ObjectId, ref: User}
""".strip()
        + "\n",
        encoding="utf-8",
    )

    return project_dir
