import logging

from pymongo import MongoClient
from pymongo.server_api import ServerApi

import config

logger = logging.getLogger(__name__)

# Connect using Server API version 1
client = MongoClient(config.MONGO_URI, server_api=ServerApi("1"))

# Test the connection
try:
    client.admin.command("ping")
    logger.info("Connected to MongoDB database %s", config.MONGO_DB_NAME)
except Exception as e:
    logger.warning("MongoDB ping failed: %s", e)

# Select the database
db = client[config.MONGO_DB_NAME]

# Collections
users_collection = db["users"]
branches_collection = db["branches"]
incomes_collection = db["incomes"]
expenses_collection = db["expenses"]
expense_items_collection = db["expense_items"]
bank_deposits_collection = db["bank_deposits"]
executive_cash_deposits_collection = db["executive_cash_deposits"]
