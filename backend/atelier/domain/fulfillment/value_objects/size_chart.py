"""Size-chart tolerances for QC measurements."""

from dataclasses import dataclass

from .sku import SKUCode

MEASUREMENT_DIMENSIONS = ("waist", "hip", "thigh", "inseam")


@dataclass(frozen=True)
class Tolerance:
    min: float
    target: float
    max: float

    def accepts(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class DimensionResult:
    dimension: str
    passed: bool
    value: float
    min: float
    target: float
    max: float

    @property
    def deviation(self) -> float:
        return round(self.value - self.target, 2)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "value": self.value,
            "min": self.min,
            "target": self.target,
            "max": self.max,
            "deviation": self.deviation,
        }


@dataclass(frozen=True)
class SizeChart:
    """Per-dimension tolerances; a dimension without an entry is not checked."""

    dimensions: dict[str, Tolerance]

    @classmethod
    def for_sku(cls, sku: SKUCode) -> "SizeChart":
        waist = int(sku.waist)
        thigh = round(waist * 0.72)
        dimensions = {
            "waist": Tolerance(waist - 2, waist, waist + 2),
            "hip": Tolerance(waist + 6, waist + 8, waist + 10),
            "thigh": Tolerance(thigh - 1, thigh, thigh + 1),
        }
        if not sku.has_universal_length:
            length = int(sku.length)
            dimensions["inseam"] = Tolerance(length - 1, length, length + 1)
        return cls(dimensions)

    def evaluate(self, measurements: dict[str, float]) -> list[DimensionResult]:
        results = []
        for dimension, tolerance in self.dimensions.items():
            value = float(measurements[dimension])
            results.append(
                DimensionResult(
                    dimension=dimension,
                    passed=tolerance.accepts(value),
                    value=value,
                    min=tolerance.min,
                    target=tolerance.target,
                    max=tolerance.max,
                )
            )
        return results


def passes(results: list[DimensionResult]) -> bool:
    """QC passes only when every checked dimension passes."""
    return all(result.passed for result in results)
