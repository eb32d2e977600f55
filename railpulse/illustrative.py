"""
Illustrative example suggestions.

When the real conflict feed is sparse the dashboard fills its decision
panel with worked examples so operators can see what recommendations look
like. These never correspond to a detected conflict: every one carries a
``demo-`` identifier and ``illustrative=True``.
"""

from typing import List, Dict, Any, Optional
import logging

import numpy as np

from .schemas import Suggestion

logger = logging.getLogger(__name__)

def _example(n: int, station: str, platform: str, first: str, trains: List[str],
             scores: Dict[str, float], confidence: int, saved: int, reason: str,
             action: str = "Hold") -> Dict[str, Any]:
    return {
        "suggestion_id": f"demo-sugg-{n:02d}",
        "conflict_id": f"demo-conf-{n:02d}",
        "action": action,
        "suggested_first": first,
        "trains": trains,
        "station_code": station,
        "platform": platform,
        "scores": scores,
        "confidence_percent": confidence,
        "estimated_passenger_delay_saved_min": saved,
        "reason": reason,
        "illustrative": True,
    }

ILLUSTRATIVE_POOL: List[Dict[str, Any]] = [
    _example(1, "NDLS", "4", "12424",
             ["Dibrugarh Rajdhani (12424)", "Sampark Kranti (12650)"],
             {"12424": 0.81, "12650": 0.52}, 83, 6,
             "Dibrugarh Rajdhani (12424) is prioritized. This is because it has higher operational priority, "
             "and it affects more passengers (1180 vs 740)."),
    _example(2, "HNZM", "6", "12264",
             ["Pune Duronto (12264)", "Mewar Express (12963)"],
             {"12264": 0.74, "12963": 0.61}, 70, 4,
             "Pune Duronto (12264) is prioritized. This is because it has higher operational priority."),
    _example(3, "FDB", "3", "12446",
             ["Uttar Sampark Kranti (12446)", "FDB-PWL Local (64097)"],
             {"12446": 0.69, "64097": 0.38}, 84, 5,
             "Uttar Sampark Kranti (12446) is prioritized. This is because it affects more passengers (1040 vs 610)."),
    _example(4, "PWL", "1", "12910",
             ["Garib Rath (12910)", "BOXN Freight (00512)"],
             {"12910": 0.72, "00512": 0.05}, 99, 8,
             "Garib Rath (12910) is prioritized. This is because it has higher operational priority, "
             "and it affects more passengers (960 vs 0).",
             action="Proceed"),
    _example(5, "KSV", "2", "12192",
             ["Shridham Express (12192)", "Chhattisgarh Express (18238)"],
             {"18238": 0.66, "12192": 0.71}, 55, 2,
             "Shridham Express (12192) is prioritized. "
             "It has a slightly better overall operational score based on current conditions."),
    _example(6, "MTJ", "1", "12779",
             ["Goa Express (12779)", "MTJ-AGC MEMU (64921)"],
             {"12779": 0.77, "64921": 0.41}, 88, 6,
             "Goa Express (12779) is prioritized. This is because it is already running later (18 min)."),
    _example(7, "MTJ", "3", "12716",
             ["Sachkhand Express (12716)", "Jhelum Express (11078)"],
             {"12716": 0.63, "11078": 0.58}, 55, 3,
             "Sachkhand Express (12716) is prioritized. "
             "It has a slightly better overall operational score based on current conditions."),
    _example(8, "AGC", "2", "12280",
             ["Taj Express (12280)", "Intercity Express (14212)"],
             {"12280": 0.7, "14212": 0.49}, 76, 5,
             "Taj Express (12280) is prioritized. This is because it affects more passengers (1120 vs 820)."),
    _example(9, "AGC", "4", "20171",
             ["Vande Bharat Express (20171)", "Kerala Express (12626)"],
             {"20171": 0.79, "12626": 0.66}, 70, 4,
             "Vande Bharat Express (20171) is prioritized. This is because it has higher operational priority."),
    _example(10, "NDLS", "12", "12310",
             ["Patna Rajdhani (12310)", "Howrah Mail (12322)"],
             {"12310": 0.86, "12322": 0.55}, 84, 7,
             "Patna Rajdhani (12310) is prioritized. This is because it has higher operational priority, "
             "and it affects more passengers (1190 vs 780).",
             action="Reroute"),
    _example(11, "HNZM", "1", "12618",
             ["Mangala Lakshadweep (12618)", "Nizamuddin-Agra Passenger (54473)"],
             {"12618": 0.75, "54473": 0.33}, 93, 8,
             "Mangala Lakshadweep (12618) is prioritized. This is because it has higher operational priority, "
             "and it affects more passengers (1090 vs 520)."),
    _example(12, "PWL", "4", "11058",
             ["Amritsar Express (11058)", "Chhattisgarh Express (18238)"],
             {"11058": 0.68, "18238": 0.6}, 55, 3,
             "Amritsar Express (11058) is prioritized. This is because it is already running later (12 min)."),
]

def pad_with_illustrative_examples(suggestions: List[Suggestion], target_count: int,
                                   rng: np.random.Generator,
                                   pool: Optional[List[Dict[str, Any]]] = None) -> List[Suggestion]:
    """
    Append randomly chosen examples (without replacement) until ``target_count``
    suggestions exist or the pool runs out. Real suggestions keep their order
    and always come first.
    """
    pool = ILLUSTRATIVE_POOL if pool is None else pool
    needed = target_count - len(suggestions)
    if needed <= 0 or not pool:
        return list(suggestions)

    picks = rng.permutation(len(pool))[:needed]
    padded = list(suggestions) + [Suggestion(**pool[int(i)]) for i in picks]

    if len(padded) < target_count:
        logger.info(f"Illustrative pool exhausted: {len(padded)} of {target_count} suggestions filled")
    return padded
