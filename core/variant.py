"""
Challenge Variants
==================

The closed set of challenge types this server can classify. Each variant maps
to one ONNX artifact and one predictor shape. A few variants reuse another
variant's model; those carry an alias and share its registry slot.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import UnknownVariantError


CLASSIFIER = "classifier"   # one image, N hypotheses
PAIR = "pair"               # reference crop vs candidate strip


class Variant(Enum):
    """Challenge type, valued by its wire name"""
    ROLLBALL_ANIMALS = "3d_rollball_animals"
    ROLLBALL_OBJECTS = "3d_rollball_objects"
    ROLLBALL_ANIMALS_MULTI = "3d_rollball_animals_multi"
    COORDINATES_MATCH = "coordinatesmatch"
    HOPSCOTCH_HIGHSEC = "hopscotch_highsec"
    TRAIN_COORDINATES = "train_coordinates"
    PENGUIN = "penguin"
    PENGUINS = "penguins"
    SHADOWS = "shadows"
    BROKEN_JIGSAW_SWAP = "BrokenJigsawbrokenjigsaw_swap"
    FRANKENHEAD = "frankenhead"
    COUNTING = "counting"
    CARD = "card"
    ROCKSTACK = "rockstack"
    CARDISTANCE = "cardistance"
    PENGUINS_ICON = "penguins-icon"
    KNOTS_CROSSES_CIRCLE = "knotsCrossesCircle"
    HAND_NUMBER_PUZZLE = "hand_number_puzzle"
    DICEMATCH = "dicematch"
    NUMERICALMATCH = "numericalmatch"
    CONVEYOR = "conveyor"
    UNBENTOBJECTS = "unbentobjects"
    LUMBER_LENGTH_GAME = "lumber-length-game"
    ORBIT_MATCH_GAME = "orbit_match_game"
    DICEICO = "diceico"
    DICE_PAIR = "dice_pair"
    MAZE2 = "maze2"

    @classmethod
    def parse(cls, name: str) -> "Variant":
        """
        Resolve a wire name to a Variant.

        Raises:
            UnknownVariantError: if the name is not a known challenge type
        """
        try:
            return cls(name)
        except ValueError:
            raise UnknownVariantError(name) from None

    @property
    def ordinal(self) -> int:
        return _ORDINALS[self]

    @property
    def spec(self) -> "VariantSpec":
        return VARIANT_SPECS[self]

    @property
    def slot(self) -> "Variant":
        """The variant whose predictor this one uses"""
        return self.spec.alias or self


@dataclass(frozen=True)
class VariantSpec:
    artifact: str
    shape: str
    grayscale: bool = False
    alias: Optional[Variant] = None


VARIANT_SPECS: Dict[Variant, VariantSpec] = {
    Variant.ROLLBALL_ANIMALS: VariantSpec("3d_rollball_objects.onnx", PAIR, alias=Variant.ROLLBALL_OBJECTS),
    Variant.ROLLBALL_OBJECTS: VariantSpec("3d_rollball_objects.onnx", PAIR),
    Variant.ROLLBALL_ANIMALS_MULTI: VariantSpec("3d_rollball_animals_multi.onnx", PAIR),
    Variant.COORDINATES_MATCH: VariantSpec("coordinatesmatch.onnx", PAIR),
    Variant.HOPSCOTCH_HIGHSEC: VariantSpec("hopscotch_highsec.onnx", PAIR),
    Variant.TRAIN_COORDINATES: VariantSpec("train_coordinates.onnx", PAIR),
    Variant.PENGUIN: VariantSpec("penguin.onnx", CLASSIFIER),
    Variant.PENGUINS: VariantSpec("penguin.onnx", CLASSIFIER, alias=Variant.PENGUIN),
    Variant.SHADOWS: VariantSpec("shadows.onnx", CLASSIFIER),
    Variant.BROKEN_JIGSAW_SWAP: VariantSpec("BrokenJigsawbrokenjigsaw_swap.onnx", PAIR),
    Variant.FRANKENHEAD: VariantSpec("frankenhead.onnx", CLASSIFIER),
    Variant.COUNTING: VariantSpec("counting.onnx", CLASSIFIER),
    Variant.CARD: VariantSpec("card.onnx", CLASSIFIER),
    Variant.ROCKSTACK: VariantSpec("rockstack_v2.onnx", PAIR, grayscale=True),
    Variant.CARDISTANCE: VariantSpec("cardistance.onnx", PAIR),
    Variant.PENGUINS_ICON: VariantSpec("penguins-icon.onnx", CLASSIFIER),
    Variant.KNOTS_CROSSES_CIRCLE: VariantSpec("knotsCrossesCircle.onnx", CLASSIFIER),
    Variant.HAND_NUMBER_PUZZLE: VariantSpec("hand_number_puzzle.onnx", CLASSIFIER),
    Variant.DICEMATCH: VariantSpec("dicematch.onnx", CLASSIFIER),
    Variant.NUMERICALMATCH: VariantSpec("numericalmatch.onnx", PAIR),
    Variant.CONVEYOR: VariantSpec("conveyor.onnx", PAIR),
    Variant.UNBENTOBJECTS: VariantSpec("unbentobjects.onnx", CLASSIFIER),
    Variant.LUMBER_LENGTH_GAME: VariantSpec("lumber-length-game.onnx", CLASSIFIER),
    Variant.ORBIT_MATCH_GAME: VariantSpec("orbit_match_game.onnx", PAIR),
    Variant.DICEICO: VariantSpec("diceico.onnx", PAIR),
    Variant.DICE_PAIR: VariantSpec("dice_pair.onnx", CLASSIFIER),
    Variant.MAZE2: VariantSpec("maze2.onnx", CLASSIFIER),
}

ALL_VARIANTS: List[Variant] = list(Variant)
_ORDINALS: Dict[Variant, int] = {variant: index for index, variant in enumerate(ALL_VARIANTS)}
