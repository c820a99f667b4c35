"""Shared utilities: RF math, logging, paths and configuration"""
