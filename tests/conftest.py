"""Shared fixtures for droidreview tests."""

import pytest
import structlog

from droidreview_core.config import ReviewConfig
from droidreview_core.rules.catalog import build_default_catalog


GREETER = """package com.example

class Greeter(private val name: String?) {
    fun greet(): String = "Hello " + name!!.trim()
}
"""

LEAKY_ACTIVITY = """package com.example

class MainActivity : AppCompatActivity() {
    companion object {
        lateinit var instance: MainActivity
    }

    override fun onCreate(savedInstanceState: Bundle?) {
        super.onCreate(savedInstanceState)
        instance = this
    }
}
"""

USER_VIEWMODEL = """package com.example

class UserViewModel(private val repo: UserRepository) : ViewModel() {
    fun name() = repo.current!!.name
}
"""

USER_REPOSITORY = """package com.example

class UserRepository {
    fun load() = cache!!.user
}
"""


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI configures structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def catalog():
    return build_default_catalog()


@pytest.fixture
def config():
    return ReviewConfig()


@pytest.fixture
def sources():
    return {
        "greeter": GREETER,
        "leaky_activity": LEAKY_ACTIVITY,
        "user_viewmodel": USER_VIEWMODEL,
        "user_repository": USER_REPOSITORY,
    }
