#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Lay out a weighted tag list as a tag cloud PNG or PDF.
"""

import tag2cloud.cli


if __name__ == "__main__":
	tag2cloud.cli.main()
