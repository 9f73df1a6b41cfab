"""Clients and pure helpers used by the Buddy AI capabilities"""
