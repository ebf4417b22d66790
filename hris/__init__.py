"""HRIS notification delivery package.

Domain events raised by employee and review operations become persisted
notifications that are fanned out to email, browser, mobile and Slack.
"""
