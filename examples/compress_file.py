# SPDX-License-Identifier: MIT

import json
import logging
import sys
import time
from os.path import dirname, join

from logsqueeze import CompressorConfig, DurationExtractor, SeverityExtractor, TemplateMiner

logger = logging.getLogger(__name__)
logging.basicConfig(stream=sys.stdout, level=logging.INFO, format='%(message)s')

in_log_file = sys.argv[1] if len(sys.argv) > 1 else join(dirname(__file__), "sample.log")

config = CompressorConfig()
config.load(join(dirname(__file__), "logsqueeze.ini"))
template_miner = TemplateMiner(config=config, hooks=[SeverityExtractor(), DurationExtractor()])

line_count = 0

with open(in_log_file, 'r', errors='ignore') as f:
    lines = f.readlines()

start_time = time.time()
batch_start_time = start_time
batch_size = 10000

for line in lines:
    line = line.rstrip()
    result = template_miner.add_log_message(line)
    line_count += 1
    if line_count % batch_size == 0:
        time_took = time.time() - batch_start_time
        rate = batch_size / time_took
        logger.info(f"Processing line: {line_count}, rate {rate:.1f} lines/sec, "
                    f"{len(template_miner.drain.clusters)} clusters so far.")
        batch_start_time = time.time()
    if result["change_type"] not in ("none", "degraded"):
        logger.info(f"Result: {json.dumps(result)}")

time_took = time.time() - start_time
rate = line_count / time_took if time_took > 0 else float(line_count)
logger.info(f"--- Done processing file in {time_took:.2f} sec. Total of {line_count} lines, rate {rate:.1f} lines/sec, "
            f"{len(template_miner.drain.clusters)} clusters")

report = template_miner.get_report(processing_time_ms=round(time_took * 1000))
print(report.formatted)

#print("Prefix Tree:")
#template_miner.drain.print_tree()

template_miner.profiler.report(0)
