"""Choice enums for catalog app."""

from django.db import models


class Category(models.TextChoices):
    BELTS = "Belts", "Belts"
    WALLETS = "Wallets", "Wallets"
    BAGS = "Bags", "Bags"
    GLASSES = "Glasses", "Glasses"
    ACCESSORIES = "Accessories", "Accessories"
    ELECTRONICS = "Electronics", "Electronics"
    CLOTHING = "Clothing", "Clothing"
    HOME_KITCHEN = "Home & Kitchen", "Home & Kitchen"
    BOOKS = "Books", "Books"
    SPORTS = "Sports", "Sports"
    BEAUTY = "Beauty", "Beauty"
    TOYS = "Toys", "Toys"
    OTHER = "Other", "Other"
