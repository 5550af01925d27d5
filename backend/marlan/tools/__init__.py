"""Agent tools"""
