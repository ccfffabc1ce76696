"""GraphQL documents used by the GitHub platform adapter."""

REPO_INFO_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
    isFork
    isArchived
    nameWithOwner
    autoMergeAllowed
    hasIssuesEnabled
    mergeCommitAllowed
    rebaseMergeAllowed
    squashMergeAllowed
    defaultBranchRef {
      name
      target {
        oid
      }
    }
  }
}
"""

_PR_FIELDS = """
        number
        state
        headRefName
        baseRefName
        title
        body
        mergeable
        createdAt
        closedAt
        headRefOid
        author {
          login
        }
        labels(last: 100) {
          nodes {
            name
          }
        }
        assignees {
          totalCount
        }
        reviewRequests {
          totalCount
        }
        comments(last: 100) {
          nodes {
            databaseId
            body
          }
        }
"""

OPEN_PRS_QUERY = (
    """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: [OPEN], first: 100, after: $cursor, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {"""
    + _PR_FIELDS
    + """      }
    }
  }
}
"""
)

CLOSED_PRS_QUERY = (
    """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: [CLOSED, MERGED], first: 100, after: $cursor, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {"""
    + _PR_FIELDS
    + """      }
    }
  }
}
"""
)

ISSUES_QUERY = """
query($owner: String!, $name: String!, $user: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    issues(orderBy: {field: UPDATED_AT, direction: DESC}, filterBy: {createdBy: $user}, first: 100, after: $cursor) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        number
        state
        title
        body
      }
    }
  }
}
"""

VULNERABILITY_ALERTS_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    vulnerabilityAlerts(last: 100) {
      edges {
        node {
          dismissReason
          vulnerableManifestFilename
          vulnerableManifestPath
          vulnerableRequirements
          securityAdvisory {
            description
            identifiers {
              type
              value
            }
            references {
              url
            }
            severity
          }
          securityVulnerability {
            package {
              name
              ecosystem
            }
            firstPatchedVersion {
              identifier
            }
            vulnerableVersionRange
          }
        }
      }
    }
  }
}
"""

ENABLE_AUTO_MERGE_MUTATION = """
mutation EnablePullRequestAutoMerge($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod!) {
  enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
    pullRequest {
      number
    }
  }
}
"""
