# SPDX-License-Identifier: MIT
# This file implements grouping/parsing accuracy of mined templates against labelled ground truth.

import logging
import time
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from logsqueeze.config import CompressorConfig
from logsqueeze.template_miner import TemplateMiner

logger = logging.getLogger(__name__)


def group_accuracy(predicted: Sequence, groundtruth: Sequence) -> float:
    """
    LogPAI grouping accuracy: a predicted group counts as correct only when it
    holds exactly the lines of one ground-truth group.
    """
    data = pd.Series(list(predicted))
    truth = pd.Series(list(groundtruth))
    if data.size != truth.size:
        raise ValueError(f"{data.size} predictions for {truth.size} labelled lines")
    if data.size == 0:
        return 0.0

    count = 0
    for parsed_event_id in data.value_counts().index:
        log_ids = data[data == parsed_event_id].index
        truth_value_counts = truth[log_ids].value_counts()
        if truth_value_counts.size == 1:
            truth_event_id = truth_value_counts.index[0]
            if log_ids.size == truth[truth == truth_event_id].size:
                count += log_ids.size
        else:
            logger.debug("predicted group %s mixes ground-truth groups %s",
                         parsed_event_id, truth_value_counts.index.tolist())
    return round(float(count) / data.size, 4)


def _pairs(n: pd.Series) -> int:
    return int((n * (n - 1) // 2).sum())


def rand_index(predicted: Sequence, groundtruth: Sequence) -> float:
    """Share of line pairs on which prediction and ground truth agree (same group or not)."""
    frame = pd.DataFrame({"predicted": list(predicted), "truth": list(groundtruth)})
    total_lines = len(frame)
    if total_lines < 2:
        return 0.0
    total_pairs = total_lines * (total_lines - 1) // 2
    both = _pairs(frame.groupby(["predicted", "truth"]).size())
    same_predicted = _pairs(frame["predicted"].value_counts())
    same_truth = _pairs(frame["truth"].value_counts())
    agreeing = total_pairs + 2 * both - same_predicted - same_truth
    return agreeing / total_pairs


def parsing_accuracy(predicted_templates: Sequence[str], groundtruth_templates: Sequence[str]) -> float:
    """Share of lines whose mined template equals the labelled one, whitespace-normalized."""
    if len(predicted_templates) != len(groundtruth_templates):
        raise ValueError("template sequences differ in length")
    if not predicted_templates:
        return 0.0
    correct = sum(1 for predicted, truth in zip(predicted_templates, groundtruth_templates)
                  if " ".join(str(predicted).split()) == " ".join(str(truth).split()))
    return correct / len(predicted_templates)


def evaluate(df_groundtruth: pd.DataFrame, config: Optional[CompressorConfig] = None) -> Dict[str, Any]:
    """
    Mine templates for the ``Content`` column of a LogPAI-style structured frame
    and score them against its ``EventId``/``EventTemplate`` columns.

    Templates are read after the whole input is processed, so each line is
    scored against the final form of its cluster.
    """
    template_miner = TemplateMiner(config=config)
    start_time = time.time()
    log_template_ids = []
    for line in df_groundtruth["Content"].astype(str).tolist():
        result = template_miner.add_log_message(line.rstrip())
        log_template_ids.append(result["cluster_id"])
    time_took = time.time() - start_time

    id_to_template = {c.cluster_id: c.get_template() for c in template_miner.drain.clusters}
    df_data = pd.DataFrame({"EventId": log_template_ids})
    df_data["EventTemplate"] = df_data["EventId"].map(id_to_template)

    result = {
        "lines": len(df_data),
        "clusters": len(id_to_template),
        "group_accuracy": group_accuracy(df_data["EventId"], df_groundtruth["EventId"]),
        "rand_index": rand_index(df_data["EventId"], df_groundtruth["EventId"]),
        "duration_sec": time_took,
    }
    if "EventTemplate" in df_groundtruth.columns:
        result["parsing_accuracy"] = parsing_accuracy(df_data["EventTemplate"].tolist(),
                                                      df_groundtruth["EventTemplate"].tolist())
    logger.info("Group Accuracy: %.4f, Duration: %.2f sec, Total of %s lines, %s clusters",
                result["group_accuracy"], time_took, result["lines"], result["clusters"])
    return result
