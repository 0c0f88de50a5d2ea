#!/usr/bin/env python
# coding: utf-8

__version__ = "0.4.2"
__author__ = "Context Engineering Contributors"
