"""Calls into the Chainlink service contracts made after deployment"""
