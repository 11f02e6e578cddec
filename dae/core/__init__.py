"""Core auction engine, settlement, host simulator and configuration"""
