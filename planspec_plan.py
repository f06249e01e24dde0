# planspec_plan.py
# Plan for fm-app-go-template: build, test and push on every commit.
from __future__ import annotations

from planspec.dsl import (
    JobBuilder,
    branch_management,
    checkout,
    git_repository,
    notification,
    permissions,
    plan,
    remote_trigger,
    script,
    stage,
    test_parser,
)

PROJECT_KEY = "TMPLTS"
PLAN_KEY = "FAGT"
REPO_NAME = "fm-app-go-template"

# Bitbucket Cloud webhook sources plus the internal relay
BITBUCKET_IPS = (
    "104.192.136.0/21,34.198.203.127,34.198.178.64,34.198.32.85,"
    "104.192.142.195,10.105.6.166"
)


def define_plan():
    default_job = (
        JobBuilder("Default Job", "DJ")
        .tasks(
            checkout(f"Checkout {REPO_NAME} repo", clean=True),
            script(
                "Fix version in Makefile for CI env",
                'sed -i -e "s/^VERSION=.*/VERSION=$(git describe --tags --always)/g" Makefile',
            ),
            script("Build Docker image", "make docker"),
            script("Run test", "make docker-test"),
            script("Push to Docker registry", "make docker-push"),
            script("Push to artifact server", "make deploy"),
        )
        .final_tasks(
            test_parser("Parse test result", "test-result/junit-test-report.xml"),
            script("Cleanup build and test results", "make clean"),
        )
    )

    return (
        plan(PROJECT_KEY, PLAN_KEY, REPO_NAME, project_name="Templates")
        .describe(
            f"This plan is being managed via configuration-as-code. "
            f"Modify {REPO_NAME} project to update the plan."
        )
        .stages(stage("Default Stage", default_job, description="Build, test and push"))
        .repositories(
            git_repository(
                REPO_NAME,
                f"git@bitbucket.org:fusemail/{REPO_NAME}.git",
                branch="master",
                credentials="Bitbucket Cloud - Bamboo Master Key",
            )
        )
        .notifications(notification("plan_status_changed", "committers"))
        .triggers(remote_trigger(BITBUCKET_IPS, description="Bitbucket Cloud Trigger"))
        .branches(
            branch_management(
                creation="for_vcs_branch",
                delete_removed_after_days=0,
                notify_committers=True,
            )
        )
    )


def define_permissions():
    return permissions(PROJECT_KEY, PLAN_KEY, logged_in=["VIEW"], anonymous=["VIEW"])
