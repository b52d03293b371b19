"""Availability and booking engine"""
