import argparse
import logging
import sys
import time
from typing import List, Optional, TextIO, Tuple

from log_setup import add_run_log_file, remove_file_handlers, set_logger
from visualization.schedule_visualizer import visualize_schedule
from wfq_simulation.packet import Packet
from wfq_simulation.scheduler import WFQScheduler
from wfq_simulation.trace import TRACE_ENCODING, TRACE_ERRORS, format_dispatch, open_trace_stream, read_records


def parse_args(argv):
    parser = argparse.ArgumentParser(
        description='Replay a packet trace through a single-link Weighted Fair Queuing scheduler. '
                    'Reads the trace from stdin and writes "<start>: <record>" lines to stdout in schedule order.'
    )
    parser.add_argument('-input', default=None,
                        help='Read the trace from this file instead of standard input')
    parser.add_argument('-debug', required=False, action='store_true', dest='debug', default=False,
                        help='Enable DEBUG logging (per-packet dispatch decisions) on stderr')
    parser.add_argument('-log_dir', default=None,
                        help='Also write a per-run DEBUG log file into this directory')
    parser.add_argument('-stats', required=False, action='store_true', dest='stats', default=False,
                        help='Log schedule statistics (global and per flow) when dispatch completes')
    parser.add_argument('-plot', default=None, metavar='DIR',
                        help='Write a PNG of the schedule timeline and per-flow delays into DIR')
    return parser.parse_args(argv)


def _ingest(scheduler: WFQScheduler, lines) -> None:
    for record in read_records(lines):
        scheduler.ingest_record(record)


def _log_statistics(statistics) -> None:
    message = "\n".join(f"{k}: {v}" for k, v in statistics.as_dict().items())
    logging.info(f"Schedule stats: \n {message}")
    for key, flow_stats in sorted(statistics.flows.items(), key=lambda kv: kv[1].priority):
        logging.info(
            f"flow {key} prio={flow_stats.priority} packets={flow_stats.packets} "
            f"length={flow_stats.total_length} avg_delay={flow_stats.avg_delay:.3f} max_delay={flow_stats.max_delay}"
        )


def main(argv: List[str], stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    args = parse_args(argv)
    set_logger(logging.DEBUG if args.debug else logging.INFO)
    logfile = add_run_log_file(args.log_dir) if args.log_dir else None
    if logfile:
        logging.info(f"Logging run to {logfile}")

    out = stdout if stdout is not None else sys.stdout
    dispatched: List[Tuple[int, Packet]] = []

    def emit(start: int, packet: Packet) -> None:
        out.write(format_dispatch(start, packet.payload) + "\n")
        if args.plot:
            dispatched.append((start, packet))

    try:
        scheduler = WFQScheduler()
        if args.input:
            with open_trace_stream(open(args.input, 'rb')) as f:
                _ingest(scheduler, f)
        else:
            _ingest(scheduler, stdin if stdin is not None else sys.stdin)

        start = time.perf_counter()
        statistics = scheduler.dispatch(emit)
        elapsed = time.perf_counter() - start
        logging.debug(f"Dispatch run time: {elapsed:.3f} seconds")
        out.flush()

        if args.stats:
            _log_statistics(statistics)
        if args.plot:
            visualize_schedule(dispatched, statistics, out_dir=args.plot)
    except MemoryError:
        out.flush()
        logging.critical("ERROR: allocation failed")
        return 1
    finally:
        if logfile:
            remove_file_handlers(logfile)
    return 0


def run() -> None:
    # Console-only logging until main() knows the requested level.
    set_logger()
    # Pass record bytes through unchanged, whatever the locale.
    sys.stdin.reconfigure(encoding=TRACE_ENCODING, errors=TRACE_ERRORS, newline="")
    sys.stdout.reconfigure(encoding=TRACE_ENCODING, errors=TRACE_ERRORS)
    try:
        sys.exit(main(sys.argv[1:]))
    except Exception:
        logging.exception("WFQ replay failed with an exception")
        raise


if __name__ == '__main__':
    run()
