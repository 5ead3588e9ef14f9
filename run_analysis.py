#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Run Housing Price Report

Cleans the sales file, fits the price and quality models and prints the
results, e.g.

    python run_analysis.py --data kc_house_data.csv --plots plots --verbose

'''

import sys

from housing_report.pipeline import main

if __name__ == '__main__':
    sys.exit(main())
