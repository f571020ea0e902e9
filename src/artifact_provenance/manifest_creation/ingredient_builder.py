"""
Ingredient Builder Module

Turns artifact files into hash-pinned ``Ingredient`` records.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .. import hashing
from ..errors import ValidationError
from ..models import AssetKind, AssetType, Ingredient, IngredientData
from .asset_classifier import classify

logger = logging.getLogger(__name__)

RELATIONSHIP = "componentOf"


def new_ingredient_id() -> str:
    return f"uuid:{uuid.uuid4()}"


def file_url(path: Union[str, Path]) -> str:
    """``file://`` URL of the absolute path, used as the ingredient location."""
    return f"file://{Path(path).absolute()}"


def create_ingredient_from_path(path: Union[str, Path],
                                name: str,
                                asset_type: AssetType,
                                media_type: str) -> Ingredient:
    """
    Create an ingredient for one artifact file.

    Args:
        path: Path to the artifact
        name: Human-readable ingredient title
        asset_type: Asset type tag for ``data_types``
        media_type: Media type stored as the ingredient format

    Returns:
        Ingredient carrying the file's SHA-256 digest
    """
    data = IngredientData(
        url=file_url(path),
        alg=hashing.HASH_ALGORITHM,
        hash=hashing.digest_file(path),
        data_types=[asset_type],
    )

    return Ingredient(
        title=name,
        format=media_type,
        relationship=RELATIONSHIP,
        document_id=new_ingredient_id(),
        instance_id=new_ingredient_id(),
        data=data,
    )


def pair_paths_with_names(paths: Sequence[Union[str, Path]],
                          names: Optional[Sequence[str]]) -> List[Tuple[Path, str]]:
    """
    Pair artifact paths with ingredient names positionally.

    A single name is reused for every path. When no names are given the
    file name is used.
    """
    paths = [Path(p) for p in paths]
    if not names:
        return [(p, p.name) for p in paths]
    if len(names) == 1:
        return [(p, names[0]) for p in paths]
    if len(names) != len(paths):
        raise ValidationError(
            f"Number of ingredient names ({len(names)}) must match number of paths ({len(paths)})"
        )
    return list(zip(paths, names))


def build_ingredients(paths: Sequence[Union[str, Path]],
                      names: Optional[Sequence[str]],
                      kind: AssetKind,
                      show_progress: bool = False) -> List[Ingredient]:
    """
    Classify and hash every path; the first failure aborts the whole batch.

    With ``show_progress`` each file is reported at INFO level before it is
    hashed.
    """
    pairs = pair_paths_with_names(paths, names)
    ingredients = []
    for position, (path, name) in enumerate(pairs, start=1):
        if show_progress:
            logger.info("Hashing ingredient %d/%d: %s", position, len(pairs), path)
        asset_type, media_type = classify(path, kind)
        ingredients.append(create_ingredient_from_path(path, name, asset_type, media_type))
    return ingredients
