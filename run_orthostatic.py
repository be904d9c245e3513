#!/usr/bin/env python3
"""
Orthostatic Test Analyzer - Main Script

Pipeline for:
1. Loading the FIT activity of an orthostatic test (local file or Garmin Connect)
2. Allocating RR intervals to the test laps
3. Per-phase average HR and RMSSD
4. Exporting the results (InfluxDB or CSV points, intervals.icu wellness, plot)
"""

import argparse
import os
import yaml
from pathlib import Path
import logging

from fit_loading import load_activity, load_activity_archive
from garmin_download import login as garmin_login, download_latest_activity
from session_reader import read_session
from export import (
    INTERVALS_BASE_URL, session_to_points, write_points_csv,
    write_points_influx, push_wellness
)


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_config(config_path: str) -> dict:
    """Load YAML configuration file."""
    with open(config_path, 'r') as f:
        return yaml.safe_load(f) or {}


def create_default_config() -> dict:
    """Create default configuration template."""
    return {
        'project': {
            'name': 'orthostatic-test',
            'output_dir': './output',
        },
        'data': {
            'activity_path': '/path/to/activity.zip',  # .fit, .zip or a directory holding one
        },
        'garmin': {
            'enabled': False,  # download the newest matching activity instead of reading activity_path
            'email': 'you@example.com',
            'password': 'your-password',
            'activity_name': 'Orthostatic Test',
            'token_dir': './garmin_tokens',
            'last_known_activity_file': './garmin_last_activity.txt',
        },
        'output': {
            'write_csv': True,
            'plot': False,
        },
        'influxdb': {
            'enabled': False,
            'url': 'http://localhost:8086',
            'token': 'your-token',
            'org': 'your-org',
            'bucket': 'orthostatic',
        },
        'intervals_icu': {
            'enabled': False,
            'athlete_id': 'i00000',
            'api_key': 'your-api-key',
            'base_url': INTERVALS_BASE_URL,
        },
    }


def run_orthostatic_pipeline(cfg: dict, plot: bool = False):
    """
    Main pipeline execution.

    Args:
        cfg: configuration dict (see create_default_config)
        plot: force the tachogram plot even if disabled in the config

    Returns:
        The computed Session, or None when Garmin Connect has no new activity
    """
    logger.info("=" * 80)
    logger.info("Orthostatic Test Analyzer")
    logger.info("=" * 80)

    project_cfg = cfg.get('project', {})
    output_cfg = cfg.get('output', {})
    icu_cfg = cfg.get('intervals_icu', {})
    influx_cfg = cfg.get('influxdb', {})
    garmin_cfg = cfg.get('garmin', {})

    output_dir = Path(project_cfg.get('output_dir', './output'))
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output directory: {output_dir}")

    # ========================================================================
    # STEP 1: Load activity
    # ========================================================================
    logger.info("\n[STEP 1] Loading activity...")
    if garmin_cfg.get('enabled', False):
        api = garmin_login(garmin_cfg['email'], garmin_cfg['password'], Path(garmin_cfg['token_dir']))
        archive = download_latest_activity(
            api,
            garmin_cfg['activity_name'],
            Path(garmin_cfg['last_known_activity_file']),
        )
        if archive is None:
            logger.info("  No new activity downloaded.")
            return None
        records = load_activity_archive(archive)
    else:
        activity_path = Path(cfg['data']['activity_path'])
        records = load_activity(activity_path)

    # ========================================================================
    # STEP 2: Analyze laps
    # ========================================================================
    logger.info("\n[STEP 2] Analyzing laps...")
    session = read_session(records['laps'], records['hrv'], records['sessions'])
    for phase, lap in session.laps:
        logger.info(
            f"  {phase}: {len(lap.assigned_rrs)} beats, duration={lap.duration} ms, "
            f"hr={lap.average_hr:.1f} bpm, rmssd={lap.rmssd:.1f} ms"
        )

    # ========================================================================
    # STEP 3: Export
    # ========================================================================
    logger.info("\n[STEP 3] Exporting results...")
    points = session_to_points(session)
    if output_cfg.get('write_csv', True):
        write_points_csv(points, output_dir / 'orthostatic_points.csv')

    if influx_cfg.get('enabled', False):
        write_points_influx(
            session,
            url=influx_cfg['url'],
            token=influx_cfg['token'],
            org=influx_cfg['org'],
            bucket=influx_cfg['bucket'],
        )
    else:
        logger.info("  InfluxDB write disabled")

    if icu_cfg.get('enabled', False):
        push_wellness(
            session,
            athlete_id=icu_cfg['athlete_id'],
            api_key=icu_cfg['api_key'],
            base_url=icu_cfg.get('base_url', INTERVALS_BASE_URL),
        )
    else:
        logger.info("  intervals.icu push disabled")

    if plot or output_cfg.get('plot', False):
        # matplotlib is only needed here
        from visualize_laps import plot_session
        plot_path = plot_session(session, output_dir / 'orthostatic_tachogram.png')
        logger.info(f"  Saved plot to {plot_path}")

    # ========================================================================
    # Summary
    # ========================================================================
    logger.info("\n" + "=" * 80)
    logger.info("PIPELINE SUMMARY")
    logger.info("=" * 80)
    lying = session['lying']
    standing = session['standing']
    summary = {
        'lying_hr': lying.average_hr,
        'lying_rmssd': lying.rmssd,
        'standing_hr': standing.average_hr,
        'standing_rmssd': standing.rmssd,
        'hr_delta': standing.average_hr - lying.average_hr,
    }
    for key, value in summary.items():
        logger.info(f"  {key}: {value:.2f}")
    logger.info(f"Output saved to: {output_dir}")
    logger.info("=" * 80)

    return session


def main():
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description='Orthostatic test HR/HRV analysis from a FIT activity',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            # Run with existing config
            python run_orthostatic.py --config config.yaml

            # Create default config template
            python run_orthostatic.py --create-config --config config.yaml
            """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        required=True,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--create-config',
        action='store_true',
        help='Create default config template'
    )

    parser.add_argument(
        '--plot',
        action='store_true',
        help='Save an RR tachogram with the laps shaded'
    )

    args = parser.parse_args()

    config_path = args.config

    if args.create_config:
        config = create_default_config()
        os.makedirs(os.path.dirname(config_path) or '.', exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.dump(config, f, default_flow_style=False)
        print(f"Created default config template: {config_path}")
        print("Please edit the config file with your activity path and settings.")
        return

    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    run_orthostatic_pipeline(load_config(config_path), plot=args.plot)


if __name__ == '__main__':
    main()
