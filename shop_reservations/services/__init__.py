"""Reservation domain services"""
