"""
Consolidation of per-unit analysis results into one data set.
"""
import logging
from typing import Iterable

from budget_extractor.models import ChunkAnalysisResult, ConsolidatedData, UnitFailure

logger = logging.getLogger(__name__)

# Quality weights: success ratio, any priced item, any provider
SUCCESS_RATIO_WEIGHT = 50
ITEMS_WEIGHT = 30
PROVIDERS_WEIGHT = 20


class Consolidator:
    """Merge unit results in order, isolating failed units."""

    def consolidate(self, results: Iterable[ChunkAnalysisResult]) -> ConsolidatedData:
        """
        Merge the data of every contributing unit.

        Units parsed successfully or recovered by the fallback extractor both
        contribute items; only the former count as successful. Units with no
        data are listed in ``failed_units``.

        Args:
            results: Unit results in processing order

        Returns:
            ConsolidatedData with an extraction quality score
        """
        results = sorted(results, key=lambda r: r.unit_index)
        merged = ConsolidatedData(total_units_processed=len(results))

        for result in results:
            if result.success:
                merged.successful_units += 1
            if result.fallback:
                merged.fallback_units += 1
            if not result.contributes:
                merged.failed_units.append(UnitFailure(
                    unit_index=result.unit_index,
                    unit_label=result.unit_label,
                    error=result.error,
                ))
                continue

            data = result.data
            merged.materials.extend(data.materials)
            merged.labor.extend(data.labor)
            merged.equipment.extend(data.equipment)
            merged.providers.extend(data.providers)
            if data.notes:
                merged.notes.append(data.notes)
            if data.budget_summary is not None:
                if merged.budget_summary is None:
                    merged.budget_summary = data.budget_summary
                else:
                    merged.budget_summary = merged.budget_summary.merge_missing(data.budget_summary)

        merged.extraction_quality = self.quality(merged)
        logger.info(
            f"Consolidated {merged.successful_units}/{merged.total_units_processed} unit(s): "
            f"{len(merged.materials)} materials, {len(merged.labor)} labor, "
            f"{len(merged.equipment)} equipment, {len(merged.providers)} providers, "
            f"quality {merged.extraction_quality:.0f}%"
        )
        return merged

    @staticmethod
    def quality(data: ConsolidatedData) -> float:
        score = SUCCESS_RATIO_WEIGHT * data.success_ratio
        if data.item_count:
            score += ITEMS_WEIGHT
        if data.providers:
            score += PROVIDERS_WEIGHT
        return min(100.0, round(score, 2))
