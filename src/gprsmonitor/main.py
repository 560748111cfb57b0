"""
Runs the modem monitor until interrupted.
"""
import argparse
import logging
import signal
import time

from gprsmonitor.api import ApiModemManager
from gprsmonitor.config.config import apply_conf, config_directory, load_config
from gprsmonitor.connection_manager import ConnectionManager
from gprsmonitor.log import LOG_FORMAT, PollLogFilter, poll_log
from gprsmonitor.monitor.abs import ABSModemMonitor

logger = logging.getLogger(__name__)


def parse_args(args=None):
    parser = argparse.ArgumentParser(prog='gprsmonitor', description='Polls the telemetry of remote modems.')
    parser.add_argument('--config-dir', default=config_directory,
                        help='directory containing gprsmonitor.cfg (default: %(default)s)')
    parser.add_argument('--log-level', default=None, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='overrides the configured log level')
    parser.add_argument('--once', action='store_true', help='run a single tick and exit')
    return parser.parse_args(args)


def configure_logging(level, file=None):
    handler = logging.FileHandler(file) if file else logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(PollLogFilter())
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)
    return handler


def create_monitor(config):
    api = config['api']
    modems = ApiModemManager(api['url'], api['token'] or None, api['timeout'])
    connections = ConnectionManager(poll_log('gprsmonitor.connection'))
    apply_conf(config['connection'], connections)
    return ABSModemMonitor(modems, connections, config['monitor']['type'], log=poll_log('gprsmonitor.monitor'))


def run(monitor, interval, once=False, sleep=time.sleep):
    """ ticks the monitor every interval seconds while it is active. """
    while monitor.actived:
        monitor.monitore()
        if once:
            break
        sleep(interval)


def main(args=None):
    options = parse_args(args)
    config = load_config(directory=options.config_dir)
    configure_logging(options.log_level or config['log']['level'], config['log']['file'] or None)
    monitor = create_monitor(config)

    def stop(signum, frame):
        logger.info("stopping on signal %d" % signum)
        monitor.deactive()

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    logger.info("monitoring modems of type %d" % monitor.type)
    run(monitor, config['monitor']['interval'], options.once)
    return 0


if __name__ == '__main__':  # pragma no cover
    raise SystemExit(main())
